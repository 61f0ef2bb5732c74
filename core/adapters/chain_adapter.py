"""Adapter over the local chain stub.

In production, this would call a JSON-RPC node (eth_getLogs, eth_call,
eth_sendRawTransaction) with a signing relayer. Here we call the stub's ORM
models directly for repeatable, deterministic tests; the method names and
return shapes are the ones the indexer and reconstructor rely on.
"""

import logging
import uuid

from django.conf import settings
from django.db import transaction

from chain_stub.models import (
	ChainStubAllowlist, ChainStubBalance, ChainStubLog, ChainStubState, block_timestamp,
)
from core.constants import (
	ZERO_ADDRESS, normalize_address, parse_amount, parse_block, parse_split_multiplier, validate_rename,
)
from core.errors import ChainRevert, InvalidInput

logger = logging.getLogger(__name__)


def gen_tx_hash():
	return "0x" + uuid.uuid4().hex + uuid.uuid4().hex


class ChainAdapter:
	"""
	Read surface (logs, head, balances, supply, multiplier) plus the handful of
	contract calls the admin routes submit. Writes return confirmed receipts.
	"""

	def __init__(self, contract_address: str | None = None, max_log_range: int | None = None):
		self.contract_address = (contract_address or settings.CHAIN_CONTRACT_ADDRESS).lower()
		self.max_log_range = max_log_range or settings.CHAIN_MAX_LOG_RANGE

	# --- Reads -----------------------------------------------------------------

	@staticmethod
	def _state(for_update=False):
		qs = ChainStubState.objects.select_for_update() if for_update else ChainStubState.objects
		state, _ = qs.get_or_create(id=1)
		return state

	def get_block_number(self) -> int:
		return int(self._state().head_block)

	def get_logs(self, from_block: int, to_block: int, address: str | None = None) -> list[dict]:
		"""
		Return node-shaped log dicts for [from_block, to_block], inclusive.
		Ranges wider than max_log_range are rejected, like a public RPC would.
		"""
		from_block = parse_block(from_block, field="from_block")
		to_block = parse_block(to_block, field="to_block")
		if to_block < from_block:
			return []
		if to_block - from_block + 1 > self.max_log_range:
			raise InvalidInput(f"log range {from_block}-{to_block} exceeds {self.max_log_range} blocks")
		if address and address.lower() != self.contract_address:
			return []
		qs = ChainStubLog.objects.filter(block_number__gte=from_block, block_number__lte=to_block).order_by("block_number", "log_index")
		return [
			{
				"address": self.contract_address,
				"block_number": log.block_number,
				"log_index": log.log_index,
				"transaction_hash": log.tx_hash,
				"event": log.event,
				"args": dict(log.args),
				"timestamp": log.timestamp,
			}
			for log in qs
		]

	def read_balance(self, address: str) -> int:
		row = ChainStubBalance.objects.filter(address=normalize_address(address)).first()
		return int(row.balance) if row else 0

	def read_total_supply(self) -> int:
		return sum(int(b) for b in ChainStubBalance.objects.values_list("balance", flat=True))

	def read_split_multiplier(self) -> int:
		return int(self._state().split_multiplier)

	def is_allowlisted(self, address: str) -> bool:
		return ChainStubAllowlist.objects.filter(address=normalize_address(address), approved=True).exists()

	def token_info(self) -> dict:
		state = self._state()
		return {"name": state.name, "symbol": state.symbol, "total_supply": self.read_total_supply()}

	# --- Writes (each one mines a block) ----------------------------------------

	def _mine(self, logs: list[tuple[str, dict]]) -> dict:
		"""
		Append `logs` in a new block under one tx hash; caller holds the state lock
		"""
		state = self._state(for_update=True)
		state.head_block += 1
		state.save(update_fields=["head_block"])
		tx_hash = gen_tx_hash()
		ts = block_timestamp(state.head_block)
		ChainStubLog.objects.bulk_create([
			ChainStubLog(block_number=state.head_block, log_index=i, tx_hash=tx_hash, event=event, args=args, timestamp=ts)
			for i, (event, args) in enumerate(logs)
		])
		logger.debug("mined block %s tx %s (%s)", state.head_block, tx_hash, ", ".join(e for e, _ in logs))
		return {"tx_hash": tx_hash, "block_number": state.head_block, "status": "confirmed"}

	@staticmethod
	def _add(address: str, delta: int) -> int:
		row, _ = ChainStubBalance.objects.select_for_update().get_or_create(address=address, defaults={"balance": 0})
		row.balance = int(row.balance) + delta
		row.save(update_fields=["balance"])
		return row.balance

	def _require_allowlisted(self, address: str, role: str):
		if not self.is_allowlisted(address):
			raise ChainRevert(f"{role} {address} is not allowlisted")

	@transaction.atomic
	def set_allowlist(self, address: str, approved: bool) -> dict:
		addr = normalize_address(address)
		ChainStubAllowlist.objects.update_or_create(address=addr, defaults={"approved": bool(approved)})
		return self._mine([("AllowlistUpdated", {"account": addr, "approved": bool(approved)})])

	@transaction.atomic
	def mint(self, to: str, amount: int) -> dict:
		to = normalize_address(to)
		amount = parse_amount(amount)
		self._require_allowlisted(to, "recipient")
		self._add(to, amount)
		return self._mine([
			("Transfer", {"from": ZERO_ADDRESS, "to": to, "value": str(amount)}),
			("Mint", {"to": to, "amount": str(amount)}),
		])

	@transaction.atomic
	def transfer(self, frm: str, to: str, amount: int) -> dict:
		frm, to = normalize_address(frm), normalize_address(to)
		amount = parse_amount(amount)
		self._require_allowlisted(frm, "sender")
		self._require_allowlisted(to, "recipient")
		if self.read_balance(frm) < amount:
			raise ChainRevert("transfer amount exceeds balance")
		self._add(frm, -amount)
		self._add(to, amount)
		return self._mine([("Transfer", {"from": frm, "to": to, "value": str(amount)})])

	@transaction.atomic
	def burn(self, frm: str, amount: int) -> dict:
		frm = normalize_address(frm)
		amount = parse_amount(amount)
		if self.read_balance(frm) < amount:
			raise ChainRevert("burn amount exceeds balance")
		self._add(frm, -amount)
		return self._mine([("Transfer", {"from": frm, "to": ZERO_ADDRESS, "value": str(amount)})])

	@transaction.atomic
	def execute_split(self, multiplier: int) -> dict:
		"""
		Every holder grows in place; the fixed-point multiplier records the cumulative factor
		"""
		multiplier = parse_split_multiplier(multiplier)
		state = self._state(for_update=True)
		state.split_multiplier = int(state.split_multiplier) * multiplier
		state.save(update_fields=["split_multiplier"])
		rows = list(ChainStubBalance.objects.select_for_update())
		for row in rows:
			row.balance = int(row.balance) * multiplier
		ChainStubBalance.objects.bulk_update(rows, ["balance"])
		return self._mine([("StockSplit", {"multiplier": str(multiplier)})])

	@transaction.atomic
	def change_symbol(self, new_name: str, new_symbol: str) -> dict:
		new_name, new_symbol = validate_rename(new_name, new_symbol)
		state = self._state(for_update=True)
		old_name, old_symbol = state.name, state.symbol
		state.name, state.symbol = new_name, new_symbol
		state.save(update_fields=["name", "symbol"])
		return self._mine([("SymbolChanged", {
			"oldName": old_name, "newName": new_name, "oldSymbol": old_symbol, "newSymbol": new_symbol,
		})])
