"""Public API surface for the ledger.

- /balance, /cap-table, /transactions, /tokens/info: projection, point-in-time and token reads
- /corporate-actions/*, /tokens/mint, /wallets/*: submit to chain, then mirror
- /indexer/*, /verify, /debug/summary: ingestion and consistency checks
"""

from django.urls import path
from .views_ops import split, rename, mint, approve_wallet, revoke_wallet, sync
from .views_read import (
	health, balance_current, balance_historical, cap_table, cap_table_export, transactions,
	corporate_actions, allowlist, allowlist_status, indexer_status, token_info, verify, debug_summary,
)


urlpatterns = [
	path("health", health),
	path("balance/<str:address>", balance_current),
	path("balance/<str:address>/historical", balance_historical),
	path("cap-table", cap_table),
	path("cap-table/export", cap_table_export),
	path("transactions", transactions),
	path("corporate-actions", corporate_actions),
	path("corporate-actions/split", split),
	path("corporate-actions/rename", rename),
	path("tokens/info", token_info),
	path("tokens/mint", mint),
	path("wallets/approve", approve_wallet),
	path("wallets/revoke", revoke_wallet),
	path("allowlist", allowlist),
	path("allowlist/<str:address>", allowlist_status),
	path("indexer/status", indexer_status),
	path("indexer/sync", sync),
	path("verify", verify),
	path("debug/summary", debug_summary),
]
