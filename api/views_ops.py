"""Operational endpoints that submit to the chain and mirror the result."""

import json

from django.http import HttpResponseBadRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt

from core.services import LedgerServices
from .errors import handle_ledger_errors


def _body(request):
	body = json.loads(request.body or b"{}")
	if not isinstance(body, dict):
		raise ValueError("JSON body must be an object")
	return body


@csrf_exempt
@handle_ledger_errors
def split(request):
	"""
	POST: Execute a stock split {"multiplier": int > 1}
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	try:
		body = _body(request)
	except ValueError:
		return HttpResponseBadRequest("Invalid JSON")
	if "multiplier" not in body:
		return JsonResponse({"error": "multiplier is required"}, status=400)
	receipt = LedgerServices.default().split(body["multiplier"])
	return JsonResponse(dict(receipt, multiplier=body["multiplier"]), status=201)


@csrf_exempt
@handle_ledger_errors
def rename(request):
	"""
	POST: Change token name/symbol {"new_name": str, "new_symbol": 1..11 chars}
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	try:
		body = _body(request)
	except ValueError:
		return HttpResponseBadRequest("Invalid JSON")
	receipt = LedgerServices.default().rename(body.get("new_name"), body.get("new_symbol"))
	return JsonResponse(receipt, status=201)


@csrf_exempt
@handle_ledger_errors
def mint(request):
	"""
	POST: Mint {"to": address, "amount": integer units} to an allowlisted address
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	try:
		body = _body(request)
	except ValueError:
		return HttpResponseBadRequest("Invalid JSON")
	receipt = LedgerServices.default().mint(body.get("to"), body.get("amount"))
	return JsonResponse(receipt, status=201)


def _allowlist(request, approved: bool):
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	try:
		body = _body(request)
	except ValueError:
		return HttpResponseBadRequest("Invalid JSON")
	receipt = LedgerServices.default().set_allowlist(body.get("address"), approved)
	return JsonResponse(dict(receipt, approved=approved), status=201)


@csrf_exempt
@handle_ledger_errors
def approve_wallet(request):
	return _allowlist(request, True)


@csrf_exempt
@handle_ledger_errors
def revoke_wallet(request):
	return _allowlist(request, False)


@csrf_exempt
@handle_ledger_errors
def sync(request):
	"""
	POST: Index up to the chain head now (same path as the background poller)
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	return JsonResponse(LedgerServices.default().sync())
