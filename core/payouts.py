"""Payout rules for claimed stakes.

compute_payout is pure: it reads the stake and the given clock value and never
touches the database. Callers must recompute it at the moment a payout is
executed, since maturity depends on `now`.

- wBTC: a buy-back on the vault contract keyed by the on-chain stake id. The
  principal/dividend split happens in the contract, not here.
- tBTC matured: full principal back, no dividend.
- tBTC early exit: half the principal back plus a USD dividend worth the other
  half at the price stamped when the stake was made.
"""

from dataclasses import dataclass
from decimal import Decimal

from .constants import EARLY_EXIT_SHARE, TBTC, WBTC, to_fiat, to_principal
from .errors import PreconditionViolation


@dataclass(frozen=True)
class BuyBack:
	stake_id: int
	kind: str = "BUY_BACK"


@dataclass(frozen=True)
class Disbursement:
	principal_return: Decimal
	dividend_amount: Decimal
	matured: bool
	kind: str = "DISBURSEMENT"


def is_matured(stake, now) -> bool:
	return now >= stake.lock_end


def compute_payout(stake, now) -> BuyBack | Disbursement:
	if stake.asset == WBTC:
		if stake.stake_id is None:
			raise PreconditionViolation(f"{stake.public_id}: wBTC buy-back needs an on-chain stake id")
		return BuyBack(stake_id=stake.stake_id)

	if stake.asset != TBTC:
		raise PreconditionViolation(f"{stake.public_id}: unsupported asset {stake.asset!r}")

	amount = Decimal(str(stake.amount))
	if is_matured(stake, now):
		return Disbursement(principal_return=to_principal(amount), dividend_amount=to_fiat(0), matured=True)

	half = amount * EARLY_EXIT_SHARE
	return Disbursement(
		principal_return=to_principal(half),
		dividend_amount=to_fiat(half * Decimal(str(stake.btc_price_at_tx))),
		matured=False,
	)


def plan_to_dict(plan) -> dict:
	if isinstance(plan, BuyBack):
		return {"kind": plan.kind, "stake_id": plan.stake_id}
	return {
		"kind": plan.kind,
		"principal_return": f"{plan.principal_return:.8f}",
		"dividend_amount": f"{plan.dividend_amount:.2f}",
		"matured": plan.matured,
	}
