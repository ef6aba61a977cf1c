"""Deterministic in-process settlement rail.

Append-only log of the instructions a claim sends out: tBTC principal returns,
USDC dividends and wBTC buy-back calls. Used instead of signing and broadcasting
real transactions.
"""

import uuid
from django.db import models
from django.utils.timezone import now


def gen_settlement_ref():
	# Named function = migration-friendly
	return f"STL-{uuid.uuid4().hex[:12]}"


class SettlementInstruction(models.Model):
	"""
	One instruction; instructions produced by the same claim share a settlement_ref
	"""
	ACTIONS = (("principal_return", "Principal return"), ("dividend", "Dividend"), ("buy_back", "Buy-back"))

	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	settlement_ref = models.CharField(max_length=32, default=gen_settlement_ref, db_index=True)
	stake_ref = models.CharField(max_length=32) # public stake id, e.g. btc-12
	action = models.CharField(max_length=20, choices=ACTIONS)
	asset = models.CharField(max_length=10) # 'tBTC' | 'USDC' | 'wBTC'
	destination = models.CharField(max_length=100)
	amount = models.DecimalField(max_digits=24, decimal_places=8, null=True, blank=True)
	onchain_stake_id = models.PositiveBigIntegerField(null=True, blank=True)
	created_at = models.DateTimeField(default=now)
