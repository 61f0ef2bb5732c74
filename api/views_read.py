"""Read-only endpoints: balances, cap tables, transactions, actions, allowlist."""

from django.http import HttpResponse, JsonResponse

from core.constants import normalize_address
from core.errors import NotFound
from core.services import LedgerServices
from .errors import handle_ledger_errors


@handle_ledger_errors
def health(request):
	services = LedgerServices.default()
	return JsonResponse({"ok": True, "last_indexed_block": services.store.get_cursor()})


@handle_ledger_errors
def balance_current(request, address: str):
	"""
	GET: Projected balance in current (post-split) units
	"""
	return JsonResponse(LedgerServices.default().current_balance(address))


@handle_ledger_errors
def balance_historical(request, address: str):
	"""
	GET: Balance as of ?block=B (today's units + units in force at B)
	"""
	block = request.GET.get("block")
	strategy = request.GET.get("strategy", "forward")
	return JsonResponse(LedgerServices.default().historical_balance(address, block, strategy=strategy))


@handle_ledger_errors
def cap_table(request):
	"""
	GET: Cap table now, or as of ?block=B
	"""
	table = LedgerServices.default().cap_table(request.GET.get("block"), strategy=request.GET.get("strategy", "forward"))
	return JsonResponse(table.as_dict())


@handle_ledger_errors
def cap_table_export(request):
	"""
	GET: Same as cap_table, as a CSV download
	"""
	block = request.GET.get("block")
	table = LedgerServices.default().cap_table(block)
	filename = f"cap-table-block-{table.block}.csv" if table.block is not None else "cap-table-current.csv"
	resp = HttpResponse(table.to_csv(), content_type="text/csv")
	resp["Content-Disposition"] = f'attachment; filename="{filename}"'
	return resp


@handle_ledger_errors
def transactions(request):
	"""
	GET: Transfers newest first, with split-adjusted amounts
	"""
	q = request.GET
	data = LedgerServices.default().transactions(
		address=q.get("address") or None,
		block=q.get("block"),
		limit=q.get("limit", "50"),
		offset=q.get("offset", "0"),
	)
	return JsonResponse(data)


@handle_ledger_errors
def corporate_actions(request):
	return JsonResponse(LedgerServices.default().corporate_actions(), safe=False)


@handle_ledger_errors
def allowlist(request):
	"""
	GET: Approved addresses, most recently updated first
	"""
	rows = LedgerServices.default().store.allowlist(approved_only=True)
	data = [{"address": r.address, "approved": r.approved, "block": r.block_number, "timestamp": r.timestamp} for r in rows]
	return JsonResponse({"count": len(data), "addresses": data})


@handle_ledger_errors
def allowlist_status(request, address: str):
	"""
	GET: Indexed status for one address, alongside the chain's answer
	"""
	services = LedgerServices.default()
	address = normalize_address(address)
	try:
		indexed = services.store.allowlist_entry(address)
	except NotFound:
		indexed = None
	onchain = services.chain.is_allowlisted(address)
	return JsonResponse({
		"address": address,
		"approved": onchain,
		"last_updated": indexed.timestamp if indexed else None,
		"source": {"blockchain": onchain, "database": indexed.approved if indexed else False},
	})


@handle_ledger_errors
def indexer_status(request):
	services = LedgerServices.default()
	return JsonResponse(dict(services.indexer.status(), chain_head=services.chain.get_block_number()))


@handle_ledger_errors
def verify(request):
	"""
	GET: Cross-check both reconstruction strategies at ?block=B (409 on mismatch)
	"""
	return JsonResponse(LedgerServices.default().verify(request.GET.get("block")))


@handle_ledger_errors
def debug_summary(request):
	return JsonResponse(LedgerServices.default().summary())


@handle_ledger_errors
def token_info(request):
	"""
	GET: Token name, symbol, total supply and split multiplier from the chain
	"""
	return JsonResponse(LedgerServices.default().token_info())
