"""Adapter over the local settlement stub.

In production this would send the tBTC principal return from the vault wallet,
pay the USDC dividend on the EVM chain, or call buyBack(stakeId) on the vault
contract. Here we append rows to the stub's instruction log.
"""

import logging

from django.conf import settings

from core.payouts import BuyBack
from settlement_stub.models import SettlementInstruction, gen_settlement_ref

logger = logging.getLogger(__name__)


class SettlementAdapter:
	"""
	Turns a payout plan into settlement instructions and returns their shared reference
	"""

	@staticmethod
	def disburse(stake, plan) -> str:
		ref = gen_settlement_ref()
		if isinstance(plan, BuyBack):
			rows = [
				SettlementInstruction(
					settlement_ref=ref, stake_ref=stake.public_id, action="buy_back", asset=stake.asset,
					destination=settings.EVM_VAULT_ADDRESS, onchain_stake_id=plan.stake_id,
				),
			]
		else:
			rows = [
				SettlementInstruction(
					settlement_ref=ref, stake_ref=stake.public_id, action="principal_return", asset=stake.asset,
					destination=stake.user_address, amount=plan.principal_return,
				),
			]
			if plan.dividend_amount > 0:
				rows.append(SettlementInstruction(
					settlement_ref=ref, stake_ref=stake.public_id, action="dividend", asset="USDC",
					destination=stake.user_evm_address, amount=plan.dividend_amount,
				))
		SettlementInstruction.objects.bulk_create(rows)
		logger.info("settlement %s: %d instruction(s) for %s", ref, len(rows), stake.public_id)
		return ref
