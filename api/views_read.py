"""Read-only endpoints: stakes, payout previews, explorer proxy, vault info."""

from django.conf import settings
from django.http import HttpResponseBadRequest, JsonResponse
from django.utils import timezone

from core.access import AccessPolicy
from core.adapters.chain_adapter import EvmChainProbe, UtxoChainProbe, status_to_dict
from core.errors import PreconditionViolation, StakeNotFound, StoreUnavailable, TransientProbeError
from core.payouts import is_matured, plan_to_dict
from core.services import get_stake, preview_payout
from core.store import TransactionStore

from .serializers import caller_address, error_response, stake_to_json


def list_stakes(request):
	"""
	GET: All stakes, newest first. ?address= restricts to one user's BTC or EVM address
	"""
	try:
		rows = TransactionStore().list_all(address=request.GET.get("address") or None)
	except StoreUnavailable as e:
		return error_response(e)
	return JsonResponse([stake_to_json(s) for s in rows], safe=False)


def stake_detail(request, stake_ref: str):
	"""
	GET: One stake by public id (btc-1, wbtc-7, ...)
	"""
	try:
		stake = get_stake(stake_ref)
	except (StakeNotFound, StoreUnavailable) as e:
		return error_response(e)
	return JsonResponse(stake_to_json(stake))


def payout_preview(request, stake_ref: str):
	"""
	GET: What claiming this stake would pay at server time. Recomputed on every call
	"""
	now = timezone.now()
	try:
		stake, plan = preview_payout(stake_ref, now=now)
	except (StakeNotFound, PreconditionViolation, StoreUnavailable) as e:
		return error_response(e)
	return JsonResponse({
		"id": stake.public_id,
		"as_of": now.isoformat().replace("+00:00", "Z"),
		"lock_end": stake.lock_end.isoformat().replace("+00:00", "Z"),
		"matured": is_matured(stake, now),
		"actionable": stake.confirmed and not stake.claimed,
		"plan": plan_to_dict(plan),
	})


def explorer_tx(request, asset: str, tx_id: str):
	"""
	GET: Normalized explorer lookup for a BTC txid or EVM tx hash
	"""
	probes = {"btc": UtxoChainProbe, "evm": EvmChainProbe}
	if asset not in probes:
		return HttpResponseBadRequest("Unsupported asset type")
	try:
		result = probes[asset]().probe(tx_id)
	except TransientProbeError as e:
		return error_response(e)
	if result is None:
		return JsonResponse({"error": "Transaction not found"}, status=404)
	return JsonResponse(status_to_dict(result))


def vault(request):
	"""
	GET: Deposit addresses, the USDC dividend token and the lock periods offered
	"""
	return JsonResponse({
		"btc": settings.BTC_VAULT_ADDRESS,
		"evm": settings.EVM_VAULT_ADDRESS,
		"usdc_token": settings.USDC_TOKEN_ADDRESS,
		"lock_durations_days": settings.LOCK_DURATIONS_DAYS,
	})


def access(request):
	"""
	GET: Whether the wallet in X-Wallet-Address is an admin. For UI gating only
	"""
	address = caller_address(request)
	return JsonResponse({"address": address, "is_admin": AccessPolicy.from_settings().is_admin(address)})
