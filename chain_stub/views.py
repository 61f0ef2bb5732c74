"""HTTP endpoints for the chain stub mirroring a node's read surface"""

from django.http import JsonResponse, HttpResponseBadRequest

from core.adapters.chain_adapter import ChainAdapter
from core.errors import InvalidInput


def block_number(request):
	"""
	GET: Current head block
	"""
	return JsonResponse({"block_number": ChainAdapter().get_block_number()})


def logs(request):
	"""
	GET: Logs for ?from_block=&to_block= (inclusive, bounded range)
	"""
	try:
		data = ChainAdapter().get_logs(
			request.GET.get("from_block", "0"),
			request.GET.get("to_block", "0"),
			request.GET.get("address"),
		)
	except InvalidInput as e:
		return HttpResponseBadRequest(e.message)
	return JsonResponse(data, safe=False)


def balance(request, address: str):
	"""
	GET: Simulated balanceOf(address)
	"""
	try:
		units = ChainAdapter().read_balance(address)
	except InvalidInput as e:
		return HttpResponseBadRequest(e.message)
	return JsonResponse({"address": address.lower(), "balance": str(units)})


def total_supply(request):
	return JsonResponse({"total_supply": str(ChainAdapter().read_total_supply())})


def split_multiplier(request):
	"""
	GET: Cumulative split multiplier, fixed point with base 1e18
	"""
	return JsonResponse({"split_multiplier": str(ChainAdapter().read_split_multiplier())})
