from django.apps import AppConfig


class SettlementStubConfig(AppConfig):
	default_auto_field = "django.db.models.BigAutoField"
	name = "settlement_stub"
