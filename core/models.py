"""Database models for the vault.


Tables:
- User: one logical staker, identified by a BTC address and an EVM address
- AssetSequence: per-asset counter behind the public stake ids (btc-1, wbtc-1, ...)
- Stake: a tBTC or wBTC deposit locked for a period, confirmed then claimed
- PayoutRecord: audit row of the payout executed when a stake is claimed
- ReconciliationRun: one row per reconciliation pass
"""

import uuid
from datetime import timedelta
from django.db import models
from django.db.models import Q

from .constants import ASSET_NETWORKS, ASSET_TAGS, MS_PER_DAY, WBTC


class Asset(models.TextChoices):
	TBTC = "tBTC", "tBTC"
	WBTC = "wBTC", "wBTC"


class User(models.Model):
	"""
	A staker. Both addresses are unique so one address can never belong to two users
	"""
	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	btc_address = models.CharField(max_length=100, unique=True, null=True, blank=True)
	evm_address = models.CharField(max_length=64, unique=True, null=True, blank=True)
	created_at = models.DateTimeField(auto_now_add=True)


class AssetSequence(models.Model):
	"""
	Last sequence number handed out for an asset. Incremented under a row lock
	"""
	asset = models.CharField(max_length=8, choices=Asset.choices, primary_key=True)
	last_value = models.PositiveBigIntegerField(default=0)


class Stake(models.Model):
	"""
	A stake of one asset. Public id is "<tag>-<sequence>", e.g. "btc-12" or "wbtc-3".

	confirmed and claimed only ever go False -> True, and claimed implies confirmed.
	stake_id is the on-chain reference used by the wBTC buy-back and is only valid on wBTC.
	"""
	id = models.BigAutoField(primary_key=True)
	asset = models.CharField(max_length=8, choices=Asset.choices)
	sequence = models.PositiveBigIntegerField()
	user = models.ForeignKey(User, on_delete=models.PROTECT, related_name="stakes")
	tx_id = models.CharField(max_length=128)
	amount = models.DecimalField(max_digits=24, decimal_places=8)
	lock_duration_days = models.FloatField()
	timestamp = models.DateTimeField()
	btc_price_at_tx = models.DecimalField(max_digits=18, decimal_places=2, default=0) # 0 = not yet known
	confirmed = models.BooleanField(default=False)
	stake_id = models.PositiveBigIntegerField(null=True, blank=True)
	claimed = models.BooleanField(default=False)
	claimed_at = models.DateTimeField(null=True, blank=True)

	class Meta:
		unique_together = (("asset", "sequence"),)
		indexes = [
			models.Index(fields=["confirmed"], name="core_stake_confirmed_idx"),
			models.Index(fields=["-timestamp"], name="core_stake_ts_idx"),
		]
		constraints = [
			models.CheckConstraint(condition=Q(claimed=False) | Q(confirmed=True), name="stake_claimed_requires_confirmed"),
			models.CheckConstraint(condition=Q(stake_id__isnull=True) | Q(asset=WBTC), name="stake_ref_only_on_wbtc"),
		]

	@property
	def tag(self) -> str:
		return ASSET_TAGS.get(self.asset, "")

	@property
	def public_id(self) -> str:
		return f"{self.tag}-{self.sequence}"

	@property
	def network(self) -> str:
		return ASSET_NETWORKS.get(self.asset, "")

	@property
	def lock_end(self):
		return self.timestamp + timedelta(milliseconds=self.lock_duration_days * MS_PER_DAY)

	@property
	def user_address(self) -> str:
		return self.user.btc_address or ""

	@property
	def user_evm_address(self) -> str:
		return self.user.evm_address or ""

	def __str__(self):
		return self.public_id


class PayoutKind(models.TextChoices):
	DISBURSEMENT = "DISBURSEMENT", "Disbursement"
	BUY_BACK = "BUY_BACK", "Buy-back"


class PayoutRecord(models.Model):
	"""
	The plan executed when a stake was claimed. One per stake.
	"""
	id = models.BigAutoField(primary_key=True)
	stake = models.OneToOneField(Stake, on_delete=models.PROTECT, related_name="payout")
	kind = models.CharField(max_length=16, choices=PayoutKind.choices)
	principal_return = models.DecimalField(max_digits=24, decimal_places=8, null=True, blank=True)
	dividend_amount = models.DecimalField(max_digits=18, decimal_places=2, null=True, blank=True)
	matured = models.BooleanField(null=True)
	onchain_stake_id = models.PositiveBigIntegerField(null=True, blank=True)
	settlement_ref = models.CharField(max_length=128, blank=True, default="")
	executed_by = models.CharField(max_length=100)
	created_at = models.DateTimeField(auto_now_add=True)


class ReconciliationRun(models.Model):
	"""
	Outcome of one reconciliation pass over the pending stakes.
	"""
	id = models.BigAutoField(primary_key=True)
	triggered_by = models.CharField(max_length=100, blank=True, default="")
	started_at = models.DateTimeField()
	finished_at = models.DateTimeField()
	checked = models.IntegerField(default=0)
	confirmed = models.IntegerField(default=0)
	skipped = models.IntegerField(default=0)
	failures = models.JSONField(default=dict, blank=True) # public id -> reason
