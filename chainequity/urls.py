"""URL routing for the ledger API + the local chain stub.


The /api/ namespace exposes ledger reads and chain-submitting operations;
/stub/chain/ exposes the deterministic chain used by the adapter. In
production, the stub is replaced by a real RPC endpoint.
"""

from django.urls import path, include


urlpatterns = [
	path("api/", include("api.urls")),
	path("stub/chain/", include("chain_stub.urls")),
]
