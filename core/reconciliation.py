"""Confirmation reconciliation for pending stakes.

One pass: load every unconfirmed stake, ask the explorer matching its asset
whether the funding transaction is in a block, and flip confirmed for those that
are. Probes run concurrently in a thread pool; the confirm writes happen on the
calling thread as results come in, so all ORM access stays on one connection.

Each confirm is a conditional update committed on its own. A pass that dies
half way keeps what it wrote, and overlapping passes converge on the same state.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime

from django.conf import settings
from django.utils import timezone

from .adapters.chain_adapter import EvmChainProbe, UtxoChainProbe
from .constants import TBTC, WBTC
from .errors import TransientProbeError
from .store import TransactionStore

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationReport:
	started_at: datetime
	finished_at: datetime | None = None
	checked: int = 0
	confirmed: list[str] = field(default_factory=list)
	pending: list[str] = field(default_factory=list)
	skipped: dict[str, str] = field(default_factory=dict)

	@property
	def confirmed_count(self) -> int:
		return len(self.confirmed)

	def as_dict(self) -> dict:
		return {
			"checked": self.checked,
			"updated_count": self.confirmed_count,
			"confirmed": self.confirmed,
			"pending": self.pending,
			"skipped": self.skipped,
			"started_at": self.started_at.isoformat(),
			"finished_at": self.finished_at.isoformat() if self.finished_at else None,
		}


def default_probes() -> dict:
	return {TBTC: UtxoChainProbe(), WBTC: EvmChainProbe()}


class ReconciliationEngine:

	def __init__(self, store: TransactionStore | None = None, probes: dict | None = None, max_workers: int | None = None):
		self.store = store or TransactionStore()
		self.probes = default_probes() if probes is None else probes
		self.max_workers = max_workers or getattr(settings, "RECONCILE_MAX_WORKERS", 8)

	def _check(self, probe, stake) -> bool:
		return probe.is_confirmed(probe.probe(stake.tx_id))

	def reconcile_all(self) -> ReconciliationReport:
		"""
		Run one pass. Raises StoreUnavailable only when the pending set cannot be
		read (nothing written) or a confirm write fails (earlier writes kept).
		"""
		report = ReconciliationReport(started_at=timezone.now())
		pending = self.store.list_unconfirmed()
		report.checked = len(pending)

		jobs = []
		for stake in pending:
			probe = self.probes.get(stake.asset)
			if probe is None:
				logger.warning("stake %s has unsupported asset %r; left pending", stake.public_id, stake.asset)
				report.skipped[stake.public_id] = f"unsupported asset {stake.asset!r}"
				continue
			jobs.append((probe, stake))

		if jobs:
			with ThreadPoolExecutor(max_workers=min(self.max_workers, len(jobs))) as pool:
				futures = {pool.submit(self._check, probe, stake): stake for probe, stake in jobs}
				for future in as_completed(futures):
					stake = futures[future]
					ref = stake.public_id
					try:
						is_confirmed = future.result()
					except TransientProbeError as exc:
						logger.warning("probe for %s (%s) failed: %s", ref, stake.tx_id, exc)
						report.skipped[ref] = str(exc)
						continue
					except Exception as exc:
						logger.exception("unexpected probe error for %s (%s)", ref, stake.tx_id)
						report.skipped[ref] = f"{type(exc).__name__}: {exc}"
						continue

					if not is_confirmed:
						report.pending.append(ref)
						continue
					if self.store.mark_confirmed(ref):
						report.confirmed.append(ref)
					else:
						logger.debug("stake %s already confirmed by a concurrent pass", ref)

		report.finished_at = timezone.now()
		logger.info(
			"reconciliation checked=%d confirmed=%d pending=%d skipped=%d",
			report.checked, report.confirmed_count, len(report.pending), len(report.skipped),
		)
		return report
