"""Domain errors raised by the vault core.

Validation and authorization reuse Django's ValidationError / PermissionDenied.
"""


class VaultError(Exception):
	"""Base class for vault domain errors."""


class TransientProbeError(VaultError):
	"""
	A chain explorer could not be queried (network, timeout, malformed payload).
	The stake stays pending and is retried on the next reconciliation pass.
	"""


class StoreUnavailable(VaultError):
	"""The stake store failed; the current operation is aborted."""


class PreconditionViolation(VaultError):
	"""The stake is not in a state that allows the requested action."""


class StakeNotFound(VaultError):
	pass


class OracleUnavailable(VaultError):
	pass
