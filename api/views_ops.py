"""Operational endpoints that move stakes forward (create/reconcile/claim).

Privileged endpoints identify the caller by the X-Wallet-Address header; the
services re-check it against the admin allow-list.
"""

from django.core.exceptions import PermissionDenied, ValidationError
from django.http import HttpResponseBadRequest, JsonResponse
from django.middleware.csrf import get_token

from core.errors import OracleUnavailable, PreconditionViolation, StakeNotFound, StoreUnavailable
from core.payouts import plan_to_dict
from core.services import attach_stake_reference, claim_stake, create_stake, refresh_prices, run_reconciliation

from .serializers import BadRequest, caller_address, error_response, read_json, stake_to_json
from .views_read import list_stakes


def health(request):
	return JsonResponse({"ok": True})


def csrf(request):
	# Forces creation/rotation of the CSRF token AND sets 'csrftoken' cookie
	return JsonResponse({"csrftoken": get_token(request)})


def stakes(request):
	"""
	GET: list stakes. POST: record a new pending stake
	"""
	if request.method == "GET":
		return list_stakes(request)
	if request.method != "POST":
		return HttpResponseBadRequest("GET or POST only")

	try:
		stake = create_stake(read_json(request))
	except (BadRequest, ValidationError, StoreUnavailable) as e:
		return error_response(e)
	return JsonResponse(stake_to_json(stake), status=201)


def reconcile(request):
	"""
	POST (admin): Check every pending stake against its chain explorer
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	try:
		report = run_reconciliation(caller_address(request))
	except (PermissionDenied, StoreUnavailable) as e:
		return error_response(e)
	return JsonResponse({"message": f"Successfully updated {report.confirmed_count} transaction(s).", **report.as_dict()})


def claim(request, stake_ref: str):
	"""
	POST (admin): Pay out a confirmed stake; tBTC disbursement or wBTC buy-back
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	try:
		stake, plan, record = claim_stake(stake_ref, caller=caller_address(request))
	except (PermissionDenied, StakeNotFound, PreconditionViolation, StoreUnavailable) as e:
		return error_response(e)
	return JsonResponse({
		"stake": stake_to_json(stake),
		"plan": plan_to_dict(plan),
		"settlement_ref": record.settlement_ref,
	})


def stake_reference(request, stake_ref: str):
	"""
	POST (admin): Attach the on-chain stake id of a wBTC stake. Body: {"stake_id": 12}
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	try:
		body = read_json(request)
		if body.get("stake_id") is None:
			raise BadRequest("stake_id required")
		stake = attach_stake_reference(stake_ref, body["stake_id"], caller=caller_address(request))
	except (BadRequest, ValidationError, PermissionDenied, StakeNotFound, PreconditionViolation, StoreUnavailable) as e:
		return error_response(e)
	return JsonResponse(stake_to_json(stake))


def prices(request):
	"""
	POST (admin): Backfill stakes whose BTC price stamp is still 0
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	try:
		price, updated = refresh_prices(caller_address(request))
	except (PermissionDenied, OracleUnavailable, StoreUnavailable) as e:
		return error_response(e)
	return JsonResponse({
		"message": f"Successfully refreshed BTC prices for {updated} transactions.",
		"current_btc_price": f"{price:.2f}",
		"updated_count": updated,
	})
