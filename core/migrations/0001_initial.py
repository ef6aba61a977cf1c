import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

	initial = True

	dependencies = []

	operations = [
		migrations.CreateModel(
			name="User",
			fields=[
				("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
				("btc_address", models.CharField(blank=True, max_length=100, null=True, unique=True)),
				("evm_address", models.CharField(blank=True, max_length=64, null=True, unique=True)),
				("created_at", models.DateTimeField(auto_now_add=True)),
			],
		),
		migrations.CreateModel(
			name="AssetSequence",
			fields=[
				("asset", models.CharField(choices=[("tBTC", "tBTC"), ("wBTC", "wBTC")], max_length=8, primary_key=True, serialize=False)),
				("last_value", models.PositiveBigIntegerField(default=0)),
			],
		),
		migrations.CreateModel(
			name="Stake",
			fields=[
				("id", models.BigAutoField(primary_key=True, serialize=False)),
				("asset", models.CharField(choices=[("tBTC", "tBTC"), ("wBTC", "wBTC")], max_length=8)),
				("sequence", models.PositiveBigIntegerField()),
				("tx_id", models.CharField(max_length=128)),
				("amount", models.DecimalField(decimal_places=8, max_digits=24)),
				("lock_duration_days", models.FloatField()),
				("timestamp", models.DateTimeField()),
				("btc_price_at_tx", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
				("confirmed", models.BooleanField(default=False)),
				("stake_id", models.PositiveBigIntegerField(blank=True, null=True)),
				("claimed", models.BooleanField(default=False)),
				("claimed_at", models.DateTimeField(blank=True, null=True)),
				("user", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="stakes", to="core.user")),
			],
			options={
				"unique_together": {("asset", "sequence")},
				"indexes": [
					models.Index(fields=["confirmed"], name="core_stake_confirmed_idx"),
					models.Index(fields=["-timestamp"], name="core_stake_ts_idx"),
				],
				"constraints": [
					models.CheckConstraint(condition=models.Q(("claimed", False), ("confirmed", True), _connector="OR"), name="stake_claimed_requires_confirmed"),
					models.CheckConstraint(condition=models.Q(("stake_id__isnull", True), ("asset", "wBTC"), _connector="OR"), name="stake_ref_only_on_wbtc"),
				],
			},
		),
		migrations.CreateModel(
			name="PayoutRecord",
			fields=[
				("id", models.BigAutoField(primary_key=True, serialize=False)),
				("kind", models.CharField(choices=[("DISBURSEMENT", "Disbursement"), ("BUY_BACK", "Buy-back")], max_length=16)),
				("principal_return", models.DecimalField(blank=True, decimal_places=8, max_digits=24, null=True)),
				("dividend_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=18, null=True)),
				("matured", models.BooleanField(null=True)),
				("onchain_stake_id", models.PositiveBigIntegerField(blank=True, null=True)),
				("settlement_ref", models.CharField(blank=True, default="", max_length=128)),
				("executed_by", models.CharField(max_length=100)),
				("created_at", models.DateTimeField(auto_now_add=True)),
				("stake", models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name="payout", to="core.stake")),
			],
		),
		migrations.CreateModel(
			name="ReconciliationRun",
			fields=[
				("id", models.BigAutoField(primary_key=True, serialize=False)),
				("triggered_by", models.CharField(blank=True, default="", max_length=100)),
				("started_at", models.DateTimeField()),
				("finished_at", models.DateTimeField()),
				("checked", models.IntegerField(default=0)),
				("confirmed", models.IntegerField(default=0)),
				("skipped", models.IntegerField(default=0)),
				("failures", models.JSONField(blank=True, default=dict)),
			],
		),
	]
