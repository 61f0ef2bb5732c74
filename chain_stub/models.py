"""In-process token contract state to simulate a compliance-gated equity token.

Every state change mines one block and appends its logs, so the indexer can
read them back through the same getLogs-shaped surface a real node offers.
"""

from django.db import models

from core.constants import MULTIPLIER_BASE
from core.fields import IntegerStringField

GENESIS_TIMESTAMP = 1_700_000_000
BLOCK_TIME_SECONDS = 2


def block_timestamp(block_number: int) -> int:
	return GENESIS_TIMESTAMP + block_number * BLOCK_TIME_SECONDS


class ChainStubState(models.Model):
	"""
	Singleton (id=1): chain head plus token-level fields
	"""
	id = models.PositiveSmallIntegerField(primary_key=True, default=1)
	head_block = models.BigIntegerField(default=0)
	name = models.CharField(max_length=200, default="ChainEquity Common")
	symbol = models.CharField(max_length=11, default="CEQ")
	split_multiplier = IntegerStringField(default=MULTIPLIER_BASE) # fixed point, base 1e18


class ChainStubBalance(models.Model):
	"""
	Per-address token balance as if confirmed on-chain
	"""
	address = models.CharField(max_length=42, unique=True)
	balance = IntegerStringField(default=0)


class ChainStubAllowlist(models.Model):
	address = models.CharField(max_length=42, unique=True)
	approved = models.BooleanField(default=False)


class ChainStubLog(models.Model):
	"""
	Append-only event log; args amounts are decimal strings, like a JSON-RPC node returns
	"""
	id = models.BigAutoField(primary_key=True)
	block_number = models.BigIntegerField(db_index=True)
	log_index = models.IntegerField()
	tx_hash = models.CharField(max_length=80)
	event = models.CharField(max_length=40) # 'Transfer'|'Mint'|'AllowlistUpdated'|'StockSplit'|'SymbolChanged'
	args = models.JSONField(default=dict)
	timestamp = models.BigIntegerField()

	class Meta:
		ordering = ("block_number", "log_index")
		unique_together = (("block_number", "log_index"),)
