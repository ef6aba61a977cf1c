import uuid

import django.utils.timezone
from django.db import migrations, models

import settlement_stub.models


class Migration(migrations.Migration):

	initial = True

	dependencies = []

	operations = [
		migrations.CreateModel(
			name="SettlementInstruction",
			fields=[
				("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
				("settlement_ref", models.CharField(db_index=True, default=settlement_stub.models.gen_settlement_ref, max_length=32)),
				("stake_ref", models.CharField(max_length=32)),
				("action", models.CharField(choices=[("principal_return", "Principal return"), ("dividend", "Dividend"), ("buy_back", "Buy-back")], max_length=20)),
				("asset", models.CharField(max_length=10)),
				("destination", models.CharField(max_length=100)),
				("amount", models.DecimalField(blank=True, decimal_places=8, max_digits=24, null=True)),
				("onchain_stake_id", models.PositiveBigIntegerField(blank=True, null=True)),
				("created_at", models.DateTimeField(default=django.utils.timezone.now)),
			],
		),
	]
