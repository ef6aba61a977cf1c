"""Public API surface.

- /stakes: list + create; /stakes/<id>: read; /stakes/<id>/payout: preview
- /stakes/reconcile, /stakes/refresh-prices, /stakes/<id>/claim,
  /stakes/<id>/stake-ref: admin operations (X-Wallet-Address header)
- /explorer/*: explorer proxy and vault addresses; /access: admin check for UI gating
"""

from django.urls import path
from .views_ops import health, csrf, stakes, reconcile, claim, stake_reference, prices
from .views_read import stake_detail, payout_preview, explorer_tx, vault, access


urlpatterns = [
	path("health", health),
	path("csrf", csrf),
	path("access", access),
	path("stakes", stakes),
	path("stakes/reconcile", reconcile),
	path("stakes/refresh-prices", prices),
	path("stakes/<str:stake_ref>", stake_detail),
	path("stakes/<str:stake_ref>/payout", payout_preview),
	path("stakes/<str:stake_ref>/claim", claim),
	path("stakes/<str:stake_ref>/stake-ref", stake_reference),
	path("explorer/tx/<str:asset>/<str:tx_id>", explorer_tx),
	path("explorer/vault", vault),
]
