from django.urls import path
from .views import block_number, logs, balance, total_supply, split_multiplier


urlpatterns = [
	path("block-number", block_number),
	path("logs", logs),
	path("balance/<str:address>", balance),
	path("total-supply", total_supply),
	path("split-multiplier", split_multiplier),
]
