"""Cap table percentages and split-adjusted transaction amounts."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping

from .corporate_actions import CorporateActionLedger
from .store import Transfer

BASIS_POINTS = 10000


@dataclass(frozen=True)
class CapTableEntry:
	address: str
	balance: int
	basis_points: int

	@property
	def percentage(self) -> Decimal:
		# 5000 bp -> Decimal("50.00")
		return (Decimal(self.basis_points) / 100).quantize(Decimal("0.01"))

	def as_dict(self):
		return {"address": self.address, "balance": str(self.balance), "percentage": f"{self.percentage:.2f}"}


@dataclass(frozen=True)
class CapTable:
	total_shares: int
	entries: tuple[CapTableEntry, ...]
	block: int | None = None

	@property
	def holders(self) -> int:
		return len(self.entries)

	def as_dict(self):
		return {
			"block": self.block,
			"total_shares": str(self.total_shares),
			"holders": self.holders,
			"entries": [e.as_dict() for e in self.entries],
		}

	def to_csv(self) -> str:
		buf = io.StringIO()
		writer = csv.writer(buf, lineterminator="\n")
		writer.writerow(["Address", "Balance", "Ownership %"])
		for e in self.entries:
			writer.writerow([e.address, str(e.balance), f"{e.percentage:.2f}"])
		return buf.getvalue()


def build_cap_table(balances: Mapping[str, int], block: int | None = None) -> CapTable:
	"""
	Positive balances only, largest first (ties keep input order).
	Percentages are floored basis points; an empty supply gives 0 for everyone.
	"""
	positive = [(a, int(b)) for a, b in balances.items() if int(b) > 0]
	total = sum(b for _, b in positive)
	positive.sort(key=lambda item: item[1], reverse=True)
	entries = tuple(
		CapTableEntry(address=a, balance=b, basis_points=(b * BASIS_POINTS // total) if total > 0 else 0)
		for a, b in positive
	)
	return CapTable(total_shares=total, entries=entries, block=block)


@dataclass(frozen=True)
class AdjustedTransfer:
	hash: str
	from_address: str
	to_address: str
	raw_amount: int
	adjusted_amount: int
	multiplier: int
	block_number: int
	timestamp: int

	def as_dict(self):
		return {
			"hash": self.hash,
			"from": self.from_address,
			"to": self.to_address,
			"raw_amount": str(self.raw_amount),
			"adjusted_amount": str(self.adjusted_amount),
			"multiplier": str(self.multiplier),
			"block": self.block_number,
			"timestamp": self.timestamp,
		}


class AmountAdjuster:
	"""
	Presents historic transfers in today's post-split units
	"""

	def __init__(self, ledger: CorporateActionLedger):
		self.ledger = ledger

	def adjust(self, tx: Transfer) -> AdjustedTransfer:
		multiplier = self.ledger.cumulative_multiplier_after(tx.block_number, tx.log_index)
		return AdjustedTransfer(
			hash=tx.tx_hash,
			from_address=tx.from_address,
			to_address=tx.to_address,
			raw_amount=tx.amount,
			adjusted_amount=tx.amount * multiplier,
			multiplier=multiplier,
			block_number=tx.block_number,
			timestamp=tx.timestamp,
		)

	def adjust_all(self, transfers) -> list[AdjustedTransfer]:
		return [self.adjust(tx) for tx in transfers]
