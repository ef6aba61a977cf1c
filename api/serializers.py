"""JSON shapes and error mapping shared by the API views."""

import json
import logging

from django.core.exceptions import PermissionDenied, ValidationError
from django.http import JsonResponse

from core.errors import OracleUnavailable, PreconditionViolation, StakeNotFound, StoreUnavailable, TransientProbeError

logger = logging.getLogger(__name__)

WALLET_HEADER = "X-Wallet-Address"

# Most specific first
ERROR_STATUS = (
	(ValidationError, 400),
	(PermissionDenied, 403),
	(StakeNotFound, 404),
	(PreconditionViolation, 409),
	(TransientProbeError, 502),
	(StoreUnavailable, 503),
	(OracleUnavailable, 503),
)


class BadRequest(Exception):
	pass


def caller_address(request) -> str:
	return (request.headers.get(WALLET_HEADER) or "").strip()


def read_json(request) -> dict:
	try:
		body = json.loads(request.body or b"{}")
	except (ValueError, UnicodeDecodeError):
		raise BadRequest("Invalid JSON")
	if not isinstance(body, dict):
		raise BadRequest("JSON object expected")
	return body


def error_response(exc) -> JsonResponse:
	if isinstance(exc, BadRequest):
		return JsonResponse({"error": str(exc)}, status=400)
	for exc_type, status in ERROR_STATUS:
		if isinstance(exc, exc_type):
			message = "; ".join(exc.messages) if isinstance(exc, ValidationError) else str(exc)
			if status >= 500:
				logger.error("request failed: %s", message)
			return JsonResponse({"error": message}, status=status)
	raise exc


def _iso(dt):
	return dt.isoformat().replace("+00:00", "Z") if dt else None


def stake_to_json(stake) -> dict:
	return {
		"id": stake.public_id,
		"user_address": stake.user_address,
		"user_evm_address": stake.user_evm_address,
		"asset": stake.asset,
		"network": stake.network,
		"tx_id": stake.tx_id,
		"amount": f"{stake.amount:.8f}",
		"lock_duration_days": stake.lock_duration_days,
		"timestamp": _iso(stake.timestamp),
		"lock_end": _iso(stake.lock_end),
		"btc_price_at_tx": f"{stake.btc_price_at_tx:.2f}",
		"status": {
			"confirmed": stake.confirmed,
			"stake_id": stake.stake_id,
		},
		"claimed": stake.claimed,
		"claimed_at": _iso(stake.claimed_at),
	}
