"""Map ledger errors onto HTTP responses for the thin views."""

import functools
import logging

from django.http import JsonResponse

from core.errors import ChainRevert, ChainUnavailable, IntegrityViolation, InvalidInput, NotFound

logger = logging.getLogger(__name__)


def handle_ledger_errors(view):
	@functools.wraps(view)
	def wrapper(request, *args, **kwargs):
		try:
			return view(request, *args, **kwargs)
		except InvalidInput as e:
			return JsonResponse({"error": e.message}, status=400)
		except ChainRevert as e:
			return JsonResponse({"error": str(e)}, status=400)
		except NotFound as e:
			return JsonResponse({"error": str(e)}, status=404)
		except IntegrityViolation as e:
			logger.error("integrity violation on %s: %s", request.path, e)
			return JsonResponse({"error": str(e)}, status=409)
		except ChainUnavailable as e:
			logger.warning("chain unavailable on %s: %s", request.path, e)
			return JsonResponse({"error": "chain unavailable, retry later"}, status=503)
	return wrapper
