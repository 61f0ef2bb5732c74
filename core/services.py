"""Business orchestration for the route layer.

This module coordinates: chain submission → indexer mirror → projection, and
the read side: current balances, point-in-time balances, cap tables and
split-adjusted transaction lists. Views stay thin and only shape JSON.
"""

from __future__ import annotations

import logging

from .adapters.chain_adapter import ChainAdapter
from .captable import AmountAdjuster, build_cap_table
from .constants import (
	normalize_address, parse_amount, parse_block, parse_split_multiplier, validate_rename,
)
from .corporate_actions import CorporateActionLedger
from .errors import IntegrityViolation, InvalidInput
from .indexer import ChainIndexer
from .reconstruction import FORWARD, HistoricalReconstructor
from .store import EventStore

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 1000


def parse_page(limit, offset) -> tuple[int, int]:
	try:
		limit_num, offset_num = int(limit), int(offset)
	except (TypeError, ValueError):
		raise InvalidInput("limit and offset must be integers")
	if limit_num < 1 or limit_num > MAX_PAGE_SIZE:
		raise InvalidInput(f"limit must be a number between 1 and {MAX_PAGE_SIZE}")
	if offset_num < 0:
		raise InvalidInput("offset must be a non-negative number")
	return limit_num, offset_num


class LedgerServices:

	def __init__(self, store: EventStore, chain=None, indexer: ChainIndexer | None = None):
		self.store = store
		self.chain = chain
		self.indexer = indexer or (ChainIndexer(chain, store) if chain is not None else None)
		self.reconstructor = HistoricalReconstructor(store, chain)

	@classmethod
	def default(cls):
		"""
		Store on the default database + the stub-backed chain adapter
		"""
		return cls(EventStore(), ChainAdapter())

	# --- Reads -------------------------------------------------------------------

	def current_balance(self, address: str) -> dict:
		row = self.store.balance(address)
		return {
			"address": row.address,
			"balance": str(max(int(row.balance), 0)),
			"timestamp": row.updated_at.isoformat(),
		}

	def historical_balance(self, address: str, block, strategy: str = FORWARD) -> dict:
		address = normalize_address(address)
		snapshot = self.reconstructor.balances_as_of(parse_block(block), strategy=strategy)
		balance = snapshot.balance_of(address)
		return {
			"address": address,
			"block": snapshot.block,
			"balance": str(balance),
			"balance_at_block_units": str(balance // snapshot.scale),
		}

	def cap_table(self, block=None, strategy: str = FORWARD):
		"""
		Current cap table from the projection, or as of `block` via reconstruction
		"""
		if block is None or block == "":
			balances = self.store.balances()
			negative = {a: b for a, b in balances.items() if b < 0}
			if negative:
				logger.error("projection holds negative balances: %s", negative)
				raise IntegrityViolation(f"projection holds negative balances for {len(negative)} addresses")
			return build_cap_table(balances)
		snapshot = self.reconstructor.balances_as_of(parse_block(block), strategy=strategy)
		return build_cap_table(snapshot.holdings, block=snapshot.block)

	def transactions(self, address: str | None = None, block=None, limit=50, offset=0) -> dict:
		limit_num, offset_num = parse_page(limit, offset)
		if address:
			address = normalize_address(address)
		block_num = parse_block(block) if block not in (None, "") else None
		rows = self.store.transfers(address=address, block=block_num)
		adjuster = AmountAdjuster(CorporateActionLedger.from_store(self.store))
		page = adjuster.adjust_all(rows[offset_num:offset_num + limit_num])
		return {
			"total": len(rows),
			"limit": limit_num,
			"offset": offset_num,
			"address": address,
			"transactions": [t.as_dict() for t in page],
		}

	def corporate_actions(self) -> list[dict]:
		ledger = []
		for a in self.store.corporate_actions():
			ledger.append({
				"id": a.id,
				"kind": a.kind,
				"payload": _payload_dict(a),
				"block": a.block_number,
				"timestamp": a.timestamp,
				"tx_hash": a.tx_hash,
			})
		return ledger

	def token_info(self) -> dict:
		"""
		Name, symbol and supply as the contract reports them right now
		"""
		info = self.chain.token_info()
		return {
			"contract_address": self.chain.contract_address,
			"name": info["name"],
			"symbol": info["symbol"],
			"total_supply": str(info["total_supply"]),
			"split_multiplier": str(self.chain.read_split_multiplier()),
		}

	def verify(self, block) -> dict:
		"""
		Cross-check forward replay against backward reversal at `block`
		"""
		snapshot = self.reconstructor.cross_check(parse_block(block))
		return {"block": snapshot.block, "consistent": True, "holders": len(snapshot.holdings), "total": str(snapshot.total)}

	def summary(self) -> dict:
		"""
		Projection vs chain: totals and multipliers should match when nothing was missed
		"""
		projected = sum(b for b in self.store.balances().values())
		ledger = CorporateActionLedger.from_store(self.store)
		out = {
			"projection_total": str(projected),
			"local_multiplier": str(ledger.fixed_point_multiplier()),
			"last_indexed_block": self.store.get_cursor(),
		}
		if self.chain is not None:
			onchain_total = self.chain.read_total_supply()
			onchain_multiplier = self.chain.read_split_multiplier()
			out.update({
				"chain_total_supply": str(onchain_total),
				"chain_multiplier": str(onchain_multiplier),
				"chain_head": self.chain.get_block_number(),
				"supply_match": onchain_total == projected,
				"multiplier_match": onchain_multiplier == ledger.fixed_point_multiplier(),
			})
		return out

	# --- Chain-submitting operations (mirrored immediately) -------------------------

	def _submit(self, receipt: dict) -> dict:
		if self.indexer is not None:
			receipt = dict(receipt, indexed=self.indexer.sync(to_block=receipt["block_number"]).as_dict())
		return receipt

	def split(self, multiplier) -> dict:
		multiplier = parse_split_multiplier(multiplier)
		logger.info("submitting stock split x%s", multiplier)
		return self._submit(self.chain.execute_split(multiplier))

	def rename(self, new_name, new_symbol) -> dict:
		new_name, new_symbol = validate_rename(new_name, new_symbol)
		logger.info("submitting rename to %s (%s)", new_symbol, new_name)
		return self._submit(self.chain.change_symbol(new_name, new_symbol))

	def mint(self, to, amount) -> dict:
		to, amount = normalize_address(to), parse_amount(amount)
		logger.info("submitting mint of %s to %s", amount, to)
		return self._submit(self.chain.mint(to, amount))

	def set_allowlist(self, address, approved: bool) -> dict:
		address = normalize_address(address)
		return self._submit(self.chain.set_allowlist(address, approved))

	def sync(self) -> dict:
		return self.indexer.sync().as_dict()


def _payload_dict(action) -> dict:
	p = action.payload
	if action.kind == "split":
		return {"multiplier": str(p.multiplier)}
	return {"old_name": p.old_name, "new_name": p.new_name, "old_symbol": p.old_symbol, "new_symbol": p.new_symbol}
