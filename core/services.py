"""Business orchestration for the vault.

This module coordinates: create stake → reconcile confirmations → claim payout,
plus the price backfill and wBTC stake-reference operations used by admins.
Privileged operations check the AccessPolicy themselves; the claim is a
compare-and-swap inside @transaction.atomic so a stake is paid out once.
"""

import logging
import math
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from .access import AccessPolicy
from .adapters.price_adapter import PriceOracle
from .adapters.settlement_adapter import SettlementAdapter
from .constants import ASSET_NETWORKS, MAX_AMOUNT_INTEGER_DIGITS, PRINCIPAL_PLACES, WBTC, to_fiat
from .errors import OracleUnavailable, PreconditionViolation, StakeNotFound
from .models import PayoutRecord, Stake
from .payouts import BuyBack, Disbursement, compute_payout
from .reconciliation import ReconciliationEngine, ReconciliationReport
from .store import TransactionStore

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("user_address", "user_evm_address", "tx_id", "amount", "asset", "lock_duration_days")


def _policy(policy):
	return policy or AccessPolicy.from_settings()


def _clean_stake_payload(payload: dict) -> dict:
	"""
	Validate a create-stake body and coerce its values. Raises ValidationError before any write
	"""
	missing = [f for f in REQUIRED_FIELDS if payload.get(f) in (None, "")]
	if missing:
		raise ValidationError(f"missing required fields: {', '.join(missing)}", code="missing_fields")

	asset = payload["asset"]
	if asset not in ASSET_NETWORKS:
		raise ValidationError(f"unsupported asset: {asset}", code="invalid_asset")
	network = payload.get("network")
	if network and network != ASSET_NETWORKS[asset]:
		raise ValidationError(f"network {network!r} does not match asset {asset}", code="invalid_network")

	try:
		amount = Decimal(str(payload["amount"]))
	except InvalidOperation:
		raise ValidationError("amount must be a number", code="invalid_amount")
	if not amount.is_finite() or amount <= 0:
		raise ValidationError("amount must be > 0", code="invalid_amount")
	if amount.adjusted() >= MAX_AMOUNT_INTEGER_DIGITS:
		raise ValidationError(f"amount must have at most {MAX_AMOUNT_INTEGER_DIGITS} integer digits", code="invalid_amount")
	if amount != amount.quantize(PRINCIPAL_PLACES):
		raise ValidationError("amount must have at most 8 decimal places", code="invalid_amount")

	try:
		lock_days = float(payload["lock_duration_days"])
	except (TypeError, ValueError):
		raise ValidationError("lock_duration_days must be a number", code="invalid_lock")
	if not math.isfinite(lock_days) or lock_days <= 0:
		raise ValidationError("lock_duration_days must be > 0", code="invalid_lock")
	max_days = getattr(settings, "MAX_LOCK_DURATION_DAYS", 36500)
	if lock_days > max_days:
		raise ValidationError(f"lock_duration_days must be <= {max_days:g}", code="invalid_lock")

	stake_id = payload.get("stake_id")
	if stake_id is not None:
		if asset != WBTC:
			raise ValidationError("stake_id is only valid for wBTC stakes", code="invalid_stake_id")
		stake_id = _clean_stake_id(stake_id)

	return {
		"user_address": str(payload["user_address"]).strip(),
		"user_evm_address": str(payload["user_evm_address"]).strip(),
		"tx_id": str(payload["tx_id"]).strip(),
		"amount": amount.quantize(PRINCIPAL_PLACES),
		"asset": asset,
		"lock_duration_days": lock_days,
		"stake_id": stake_id,
	}


def _clean_stake_id(value) -> int:
	if isinstance(value, bool):
		raise ValidationError("stake_id must be a non-negative integer", code="invalid_stake_id")
	try:
		stake_id = int(str(value))
	except ValueError:
		raise ValidationError("stake_id must be a non-negative integer", code="invalid_stake_id")
	if stake_id < 0:
		raise ValidationError("stake_id must be a non-negative integer", code="invalid_stake_id")
	return stake_id


def create_stake(payload: dict, *, store: TransactionStore | None = None, oracle: PriceOracle | None = None) -> Stake:
	"""
	Record a new pending stake stamped with the current BTC price (0 if the feed is down)
	"""
	data = _clean_stake_payload(payload)
	store = store or TransactionStore()
	price = to_fiat((oracle or PriceOracle()).current_price())

	with transaction.atomic():
		user = store.resolve_user(data["user_address"], data["user_evm_address"])
		ref = store.insert(
			user=user,
			asset=data["asset"],
			tx_id=data["tx_id"],
			amount=data["amount"],
			lock_duration_days=data["lock_duration_days"],
			btc_price_at_tx=price,
			stake_id=data["stake_id"],
		)
	logger.info("created stake %s (%s %s, tx %s)", ref, data["amount"], data["asset"], data["tx_id"])
	return store.get_by_id(ref)


def get_stake(stake_ref: str, *, store: TransactionStore | None = None) -> Stake:
	stake = (store or TransactionStore()).get_by_id(stake_ref)
	if stake is None:
		raise StakeNotFound(f"stake {stake_ref} not found")
	return stake


def preview_payout(stake_ref: str, *, now=None, store: TransactionStore | None = None):
	"""
	Compute what a claim would pay right now. Works on unconfirmed stakes too (display only)
	"""
	stake = get_stake(stake_ref, store=store)
	return stake, compute_payout(stake, now or timezone.now())


def run_reconciliation(caller: str, *, engine: ReconciliationEngine | None = None, policy: AccessPolicy | None = None) -> ReconciliationReport:
	_policy(policy).require_admin(caller, "run reconciliation")
	engine = engine or ReconciliationEngine()
	report = engine.reconcile_all()
	engine.store.record_run(report, triggered_by=caller)
	return report


def _ensure_claimable(stake: Stake):
	if stake.claimed:
		raise PreconditionViolation(f"stake {stake.public_id} has already been claimed")
	if not stake.confirmed:
		raise PreconditionViolation(f"stake {stake.public_id} is not confirmed yet")


def claim_stake(stake_ref: str, *, caller: str, now=None, store: TransactionStore | None = None,
		settlement=None, policy: AccessPolicy | None = None):
	"""
	Execute the payout of a confirmed stake exactly once.

	The plan is computed at `now`, never taken from a client. The claim flag,
	the PayoutRecord and the settlement instructions are written in one
	transaction; if any step fails nothing is kept.
	Returns (stake, plan, payout_record).
	"""
	_policy(policy).require_admin(caller, "claim stakes")
	store = store or TransactionStore()
	settlement = settlement or SettlementAdapter
	now = now or timezone.now()

	stake = get_stake(stake_ref, store=store)
	_ensure_claimable(stake)
	plan = compute_payout(stake, now)
	if isinstance(plan, Disbursement) and not plan.matured and stake.btc_price_at_tx == 0:
		# 0 is the price-unknown placeholder, not a price
		raise PreconditionViolation(f"stake {stake_ref} has no BTC price stamped yet; refresh prices first")

	with transaction.atomic():
		if not store.mark_claimed(stake_ref, now):
			# Lost a race with another claim; report the state that beat us
			_ensure_claimable(get_stake(stake_ref, store=store))
			raise PreconditionViolation(f"stake {stake_ref} could not be claimed")

		is_buy_back = isinstance(plan, BuyBack)
		try:
			with transaction.atomic():
				record = PayoutRecord.objects.create(
					stake=stake,
					kind=plan.kind,
					principal_return=None if is_buy_back else plan.principal_return,
					dividend_amount=None if is_buy_back else plan.dividend_amount,
					matured=None if is_buy_back else plan.matured,
					onchain_stake_id=plan.stake_id if is_buy_back else None,
					executed_by=caller.lower(),
				)
		except IntegrityError:
			raise PreconditionViolation(f"a payout is already recorded for stake {stake_ref}")

		record.settlement_ref = settlement.disburse(stake, plan)
		record.save(update_fields=["settlement_ref"])

	logger.info("claimed %s by %s: %s (settlement %s)", stake_ref, caller, plan.kind, record.settlement_ref)
	return get_stake(stake_ref, store=store), plan, record


def refresh_prices(caller: str, *, oracle: PriceOracle | None = None, store: TransactionStore | None = None,
		policy: AccessPolicy | None = None) -> tuple[Decimal, int]:
	"""
	Backfill stakes still carrying the 0 price placeholder with the current price.
	Stakes that already have a price are never touched.
	"""
	_policy(policy).require_admin(caller, "refresh prices")
	store = store or TransactionStore()
	price = (oracle or PriceOracle()).current_price()
	if price <= 0:
		raise OracleUnavailable("failed to fetch current BTC price")

	price = to_fiat(price)
	updated = 0
	for ref in store.zero_priced_refs():
		if store.backfill_price(ref, price):
			updated += 1
	logger.info("backfilled BTC price %s on %d stake(s)", price, updated)
	return price, updated


def attach_stake_reference(stake_ref: str, stake_id, *, caller: str, store: TransactionStore | None = None,
		policy: AccessPolicy | None = None) -> Stake:
	"""
	Attach the on-chain stake id needed by the wBTC buy-back. Write-once; repeating
	the same value is accepted, a different value is rejected.
	"""
	_policy(policy).require_admin(caller, "attach stake references")
	store = store or TransactionStore()
	stake_id = _clean_stake_id(stake_id)

	stake = get_stake(stake_ref, store=store)
	if stake.asset != WBTC:
		raise PreconditionViolation(f"stake {stake_ref} is not a wBTC stake")
	if stake.stake_id is None and store.attach_stake_id(stake_ref, stake_id):
		return get_stake(stake_ref, store=store)

	stake = get_stake(stake_ref, store=store)
	if stake.stake_id != stake_id:
		raise PreconditionViolation(f"stake {stake_ref} already references on-chain stake {stake.stake_id}")
	return stake
