"""Read/write contract over the stake tables.

Public stake ids are "<tag>-<sequence>" strings; parse_stake_ref turns them back
into (asset, sequence). Writes that carry an invariant (confirm, claim, price
backfill, stake reference) are conditional updates, so repeating one is a no-op.
Database failures other than integrity errors surface as StoreUnavailable.
"""

import logging
from functools import wraps

from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from .constants import TAG_ASSETS
from .errors import StoreUnavailable
from .models import AssetSequence, ReconciliationRun, Stake, User

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"confirmed", "claimed", "claimed_at", "btc_price_at_tx", "stake_id"})


def parse_stake_ref(ref) -> tuple[str, int] | None:
	"""
	"btc-12" -> ("tBTC", 12). Returns None for anything that is not a canonical public id
	"""
	if not isinstance(ref, str):
		return None
	tag, sep, seq = ref.partition("-")
	asset = TAG_ASSETS.get(tag)
	if not sep or asset is None or not seq.isdigit() or str(int(seq)) != seq:
		return None
	return asset, int(seq)


def _store_call(func):
	@wraps(func)
	def wrapper(*args, **kwargs):
		try:
			return func(*args, **kwargs)
		except IntegrityError:
			raise
		except DatabaseError as exc:
			logger.error("stake store call %s failed: %s", func.__name__, exc)
			raise StoreUnavailable(str(exc)) from exc
	return wrapper


class TransactionStore:
	"""
	Django ORM implementation of the stake store
	"""

	def _rows(self, ref):
		parsed = parse_stake_ref(ref)
		if parsed is None:
			return Stake.objects.none()
		asset, sequence = parsed
		return Stake.objects.filter(asset=asset, sequence=sequence)

	# --- users -----------------------------------------------------------------

	@_store_call
	def resolve_user(self, btc_address: str, evm_address: str) -> User:
		"""
		Find the user owning either address, or create one holding both.

		A missing address on the matched user is filled in. An address that would
		overwrite a different one, or addresses spread over two users, is rejected
		with ValidationError(code="address_conflict"); users are never merged.
		"""
		evm_address = evm_address.lower()
		lookup = Q(btc_address=btc_address) | Q(evm_address=evm_address)
		matches = list(User.objects.filter(lookup)[:2])
		if not matches:
			try:
				with transaction.atomic():
					return User.objects.create(btc_address=btc_address, evm_address=evm_address)
			except IntegrityError:
				# Another request created a user for one of these addresses first
				matches = list(User.objects.filter(lookup)[:2])

		if len(matches) > 1:
			raise ValidationError("addresses belong to two different users", code="address_conflict")

		user = matches[0]
		if user.btc_address not in (None, "", btc_address) or user.evm_address not in (None, "", evm_address):
			raise ValidationError("address already linked to another address", code="address_conflict")

		changed = []
		if not user.btc_address:
			user.btc_address = btc_address
			changed.append("btc_address")
		if not user.evm_address:
			user.evm_address = evm_address
			changed.append("evm_address")
		if changed:
			try:
				with transaction.atomic():
					user.save(update_fields=changed)
			except IntegrityError:
				raise ValidationError("address already linked to another user", code="address_conflict")
		return user

	# --- stakes ----------------------------------------------------------------

	@_store_call
	@transaction.atomic
	def insert(self, *, user: User, asset: str, tx_id: str, amount, lock_duration_days: float,
			btc_price_at_tx=0, stake_id: int | None = None, timestamp=None) -> str:
		"""
		Allocate the next sequence for the asset and write the stake. Returns the public id
		"""
		AssetSequence.objects.get_or_create(asset=asset)
		seq = AssetSequence.objects.select_for_update().get(asset=asset)
		seq.last_value += 1
		seq.save(update_fields=["last_value"])

		stake = Stake.objects.create(
			asset=asset,
			sequence=seq.last_value,
			user=user,
			tx_id=tx_id,
			amount=amount,
			lock_duration_days=lock_duration_days,
			timestamp=timestamp or timezone.now(),
			btc_price_at_tx=btc_price_at_tx,
			stake_id=stake_id,
		)
		return stake.public_id

	@_store_call
	def get_by_id(self, ref) -> Stake | None:
		return self._rows(ref).select_related("user").first()

	@_store_call
	def list_all(self, address: str | None = None) -> list[Stake]:
		qs = Stake.objects.select_related("user").order_by("-timestamp", "-id")
		if address:
			qs = qs.filter(Q(user__btc_address=address) | Q(user__evm_address=address.lower()))
		return list(qs)

	@_store_call
	def list_unconfirmed(self) -> list[Stake]:
		return list(Stake.objects.select_related("user").filter(confirmed=False).order_by("id"))

	@_store_call
	def update(self, ref, **fields) -> Stake | None:
		"""
		Plain partial update restricted to the mutable fields. Returns the fresh row or None
		"""
		unknown = set(fields) - UPDATABLE_FIELDS
		if unknown:
			raise ValueError(f"fields not updatable: {', '.join(sorted(unknown))}")
		if fields.get("confirmed") is False or fields.get("claimed") is False:
			raise ValueError("confirmed/claimed cannot be reset")
		if fields:
			self._rows(ref).update(**fields)
		return self.get_by_id(ref)

	@_store_call
	def mark_confirmed(self, ref) -> bool:
		"""
		Flip confirmed to True. False when the stake was already confirmed (or is unknown)
		"""
		return self._rows(ref).filter(confirmed=False).update(confirmed=True) == 1

	@_store_call
	def mark_claimed(self, ref, claimed_at) -> bool:
		"""
		Compare-and-swap: only a confirmed, unclaimed stake is flipped. False otherwise
		"""
		return self._rows(ref).filter(confirmed=True, claimed=False).update(claimed=True, claimed_at=claimed_at) == 1

	@_store_call
	def backfill_price(self, ref, price) -> bool:
		"""
		Stamp a price on a stake still carrying the 0 placeholder
		"""
		return self._rows(ref).filter(btc_price_at_tx=0).update(btc_price_at_tx=price) == 1

	@_store_call
	def attach_stake_id(self, ref, stake_id: int) -> bool:
		return self._rows(ref).filter(stake_id__isnull=True).update(stake_id=stake_id) == 1

	@_store_call
	def zero_priced_refs(self) -> list[str]:
		rows = Stake.objects.filter(btc_price_at_tx=0).order_by("id")
		return [s.public_id for s in rows]

	@_store_call
	def record_run(self, report, *, triggered_by: str = "") -> ReconciliationRun:
		return ReconciliationRun.objects.create(
			triggered_by=triggered_by,
			started_at=report.started_at,
			finished_at=report.finished_at,
			checked=report.checked,
			confirmed=report.confirmed_count,
			skipped=len(report.skipped),
			failures=dict(report.skipped),
		)
