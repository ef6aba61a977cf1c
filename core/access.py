"""Allow-list gate for privileged operations (reconcile, claim, price refresh).

The UI hides admin controls for other wallets, but that is cosmetic: every
privileged service calls require_admin itself.
"""

import logging

from django.conf import settings
from django.core.exceptions import PermissionDenied

logger = logging.getLogger(__name__)


class AccessPolicy:

	def __init__(self, admin_addresses):
		self._admins = frozenset(a.lower() for a in admin_addresses if a)

	@classmethod
	def from_settings(cls) -> "AccessPolicy":
		return cls(getattr(settings, "ADMIN_ADDRESSES", ()))

	def is_admin(self, address) -> bool:
		if not address:
			return False
		return address.lower() in self._admins

	def require_admin(self, address, action: str = ""):
		if not self.is_admin(address):
			logger.warning("denied %s for %r", action or "privileged action", address)
			raise PermissionDenied(f"{address or 'anonymous'} is not allowed to {action or 'perform this action'}")
