"""Adapters over the two chain explorers used to confirm stakes.

UtxoChainProbe reads mempool.space's /tx/<txid>; EvmChainProbe reads Etherscan's
JSON-RPC proxy. Both normalize the explorer payload into a small status object,
return None when the explorer has never seen the transaction, and raise
TransientProbeError for anything that should simply be retried later.
"""

import logging
from dataclasses import asdict, dataclass

import requests
from django.conf import settings

from core.errors import TransientProbeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UtxoTxStatus:
	confirmed: bool
	block_height: int | None = None
	block_time: int | None = None


@dataclass(frozen=True)
class EvmTxStatus:
	block_number: str | None
	is_error: str # "0" ok, "1" reverted
	timestamp: int | None = None # block time, unix seconds


class UtxoChainProbe:
	"""
	mempool.space style explorer: GET {base}/tx/{txid}
	"""

	def __init__(self, base_url: str | None = None, timeout: float | None = None, session=None):
		self.base_url = (base_url or settings.MEMPOOL_API_URL).rstrip("/")
		self.timeout = timeout or getattr(settings, "EXPLORER_TIMEOUT_SECONDS", 10)
		self.session = session or requests.Session()

	def probe(self, tx_id: str) -> UtxoTxStatus | None:
		try:
			r = self.session.get(f"{self.base_url}/tx/{tx_id}", timeout=self.timeout)
			if r.status_code == 404:
				return None
			r.raise_for_status()
			body = r.json()
		except requests.RequestException as exc:
			raise TransientProbeError(f"mempool lookup failed for {tx_id}: {exc}") from exc
		except ValueError as exc:
			raise TransientProbeError(f"mempool returned non-JSON for {tx_id}") from exc

		status = body.get("status") if isinstance(body, dict) else None
		if not isinstance(status, dict):
			raise TransientProbeError(f"mempool payload for {tx_id} has no status")
		return UtxoTxStatus(
			confirmed=bool(status.get("confirmed")),
			block_height=status.get("block_height"),
			block_time=status.get("block_time"),
		)

	@staticmethod
	def is_confirmed(result: UtxoTxStatus | None) -> bool:
		return result is not None and result.confirmed


class EvmChainProbe:
	"""
	Etherscan proxy module: eth_getTransactionByHash + eth_getTransactionReceipt,
	then eth_getBlockByNumber for the block time
	"""

	def __init__(self, base_url: str | None = None, api_key: str | None = None, timeout: float | None = None, session=None):
		self.base_url = base_url or settings.ETHERSCAN_API_URL
		self.api_key = settings.ETHERSCAN_API_KEY if api_key is None else api_key
		self.timeout = timeout or getattr(settings, "EXPLORER_TIMEOUT_SECONDS", 10)
		self.session = session or requests.Session()

	def _proxy(self, action: str, tx_hash: str, **extra):
		params = {"module": "proxy", "action": action, **(extra or {"txhash": tx_hash}), "apikey": self.api_key}
		try:
			r = self.session.get(self.base_url, params=params, timeout=self.timeout)
			r.raise_for_status()
			body = r.json()
		except requests.RequestException as exc:
			raise TransientProbeError(f"etherscan {action} failed for {tx_hash}: {exc}") from exc
		except ValueError as exc:
			raise TransientProbeError(f"etherscan {action} returned non-JSON for {tx_hash}") from exc

		if not isinstance(body, dict):
			raise TransientProbeError(f"etherscan {action} returned an unexpected payload for {tx_hash}")
		result = body.get("result")
		# Rate limits and bad keys come back as {"status": "0", "result": "<message>"}
		if result is not None and not isinstance(result, dict):
			raise TransientProbeError(f"etherscan {action} for {tx_hash}: {result}")
		return result

	def probe(self, tx_hash: str) -> EvmTxStatus | None:
		if not self.api_key:
			raise TransientProbeError("ETHERSCAN_API_KEY is not configured")

		tx = self._proxy("eth_getTransactionByHash", tx_hash)
		if not tx:
			return None
		receipt = self._proxy("eth_getTransactionReceipt", tx_hash)
		if not receipt:
			return None
		block_number = tx.get("blockNumber") or receipt.get("blockNumber")
		return EvmTxStatus(
			block_number=block_number,
			is_error="1" if receipt.get("status") == "0x0" else "0",
			timestamp=self._block_time(block_number, tx_hash) if block_number else None,
		)

	def _block_time(self, block_number: str, tx_hash: str) -> int | None:
		block = self._proxy("eth_getBlockByNumber", tx_hash, tag=block_number, boolean="false")
		if not block or not block.get("timestamp"):
			return None
		try:
			return int(block["timestamp"], 16)
		except (TypeError, ValueError):
			raise TransientProbeError(f"etherscan block {block_number} has a malformed timestamp")

	@staticmethod
	def is_confirmed(result: EvmTxStatus | None) -> bool:
		return result is not None and result.block_number is not None and result.is_error == "0"


def status_to_dict(result) -> dict:
	return asdict(result)
