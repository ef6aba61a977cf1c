"""Run one reconciliation pass; meant to be invoked by cron or another scheduler."""

import json

from django.conf import settings
from django.core.exceptions import PermissionDenied
from django.core.management.base import BaseCommand, CommandError

from core.errors import StoreUnavailable
from core.services import run_reconciliation


class Command(BaseCommand):
	help = "Confirm pending stakes against the chain explorers"

	def add_arguments(self, parser):
		parser.add_argument(
			"--as", dest="operator", default=None,
			help="Admin wallet address to run as (defaults to RECONCILE_OPERATOR_ADDRESS)",
		)
		parser.add_argument("--json", action="store_true", help="Print the full report as JSON")

	def handle(self, *args, **options):
		operator = options["operator"] or getattr(settings, "RECONCILE_OPERATOR_ADDRESS", "")
		try:
			report = run_reconciliation(operator)
		except PermissionDenied as e:
			raise CommandError(str(e))
		except StoreUnavailable as e:
			raise CommandError(f"stake store unavailable: {e}")

		if options["json"]:
			self.stdout.write(json.dumps(report.as_dict(), indent=2))
			return
		self.stdout.write(self.style.SUCCESS(
			f"checked {report.checked}, confirmed {report.confirmed_count}, "
			f"pending {len(report.pending)}, skipped {len(report.skipped)}"
		))
		for ref, reason in sorted(report.skipped.items()):
			self.stdout.write(self.style.WARNING(f"  {ref}: {reason}"))
