"""URL routing for the staking API + the local settlement stub.


The /api/ namespace exposes stake, reconciliation and claim operations;
/stub/settlement/ exposes the deterministic settlement rail used by the claim
flow. In production the stub is replaced by the vault's settlement contract.
"""

from django.contrib import admin
from django.urls import path, include


urlpatterns = [
	path("admin/", admin.site.urls),
	path("api/", include("api.urls")),
	path("stub/settlement/", include("settlement_stub.urls")),
]
