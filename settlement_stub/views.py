"""HTTP endpoint for the settlement stub, mirroring what a payout rail would expose."""

from django.http import JsonResponse
from .models import SettlementInstruction


def instructions(request):
	"""
	GET: Chronological list of settlement instructions, optionally for one stake (?stake=btc-1)
	"""
	qs = SettlementInstruction.objects.order_by("created_at")
	stake_ref = request.GET.get("stake")
	if stake_ref:
		qs = qs.filter(stake_ref=stake_ref)
	data = [
		{
			"settlement_ref": i.settlement_ref,
			"stake": i.stake_ref,
			"action": i.action,
			"asset": i.asset,
			"destination": i.destination,
			"amount": f"{i.amount:.8f}" if i.amount is not None else None,
			"onchain_stake_id": i.onchain_stake_id,
			"created_at": i.created_at.isoformat().replace("+00:00", "Z"),
		}
		for i in qs
	]
	return JsonResponse(data, safe=False)
