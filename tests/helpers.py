"""Shared addresses and a scriptable in-memory chain for indexer tests."""

from core.constants import MULTIPLIER_BASE, ZERO_ADDRESS
from core.errors import ChainUnavailable
from core.indexer import _int
from core.store import Transfer

A = "0x" + "a" * 40
B = "0x" + "b" * 40
C = "0x" + "c" * 40
D = "0x" + "d" * 40
ZERO = ZERO_ADDRESS


def transfer(tx_hash, frm, to, amount, block, timestamp=None, log_index=0):
	return Transfer(
		tx_hash=tx_hash,
		from_address=frm,
		to_address=to,
		amount=amount,
		block_number=block,
		timestamp=timestamp if timestamp is not None else 1_000 + block,
		log_index=log_index,
	)


def transfer_log(tx_hash, frm, to, value, block, log_index=0):
	return {
		"block_number": block,
		"log_index": log_index,
		"transaction_hash": tx_hash,
		"event": "Transfer",
		"args": {"from": frm, "to": to, "value": str(value)},
		"timestamp": 1_000 + block,
	}


def split_log(tx_hash, multiplier, block, log_index=0):
	return {
		"block_number": block,
		"log_index": log_index,
		"transaction_hash": tx_hash,
		"event": "StockSplit",
		"args": {"multiplier": str(multiplier)},
		"timestamp": 1_000 + block,
	}


class FakeChain:
	"""
	Serves a fixed list of logs; get_logs can be told to fail a number of times
	"""
	contract_address = "0x" + "1" * 40

	def __init__(self, logs=(), head=None, failures=0, balances=None, multiplier=MULTIPLIER_BASE):
		self.logs = list(logs)
		self.head = head if head is not None else max((_int(l["block_number"]) for l in self.logs), default=0)
		self.failures = failures
		self.balances = dict(balances or {})
		self.multiplier = multiplier
		self.calls = []

	def get_block_number(self):
		return self.head

	def get_logs(self, from_block, to_block, address=None):
		self.calls.append((from_block, to_block))
		if self.failures:
			self.failures -= 1
			raise ChainUnavailable("rate limited")
		return [l for l in self.logs if from_block <= _int(l["block_number"]) <= to_block]

	def read_balance(self, address):
		return self.balances.get(address, 0)

	def read_split_multiplier(self):
		return self.multiplier
