"""Multiplier arithmetic over the ordered list of corporate actions.

Splits compose multiplicatively in block order; same-block splits keep the
order they were appended in. Renames carry no numeric effect and are skipped.

A position is (block, log_index). Passing log_index lets a transfer that was
logged before a split in the same block still count that split as "after" it;
without it the comparison is by block only.
"""

from __future__ import annotations

from dataclasses import dataclass
from math import prod
from typing import Iterable

from .constants import MULTIPLIER_BASE
from .models import CorporateActionKind


@dataclass(frozen=True)
class Split:
	block_number: int
	multiplier: int
	log_index: int | None = None

	def is_after(self, block: int, log_index: int | None = None) -> bool:
		if self.block_number != block:
			return self.block_number > block
		return log_index is not None and self.log_index is not None and self.log_index > log_index


class CorporateActionLedger:
	"""
	Immutable view over the splits of a corporate action history
	"""

	def __init__(self, splits: Iterable[Split] = ()):
		# sorted() is stable, so insertion order survives within a block
		self.splits = tuple(sorted(splits, key=lambda s: s.block_number))

	@classmethod
	def from_actions(cls, actions) -> "CorporateActionLedger":
		"""
		Build from CorporateAction rows in insertion order (EventStore.corporate_actions())
		"""
		return cls(
			Split(block_number=a.block_number, multiplier=a.payload.multiplier, log_index=a.log_index)
			for a in actions
			if a.kind == CorporateActionKind.SPLIT
		)

	@classmethod
	def from_store(cls, store) -> "CorporateActionLedger":
		return cls.from_actions(store.corporate_actions())

	def cumulative_multiplier(self) -> int:
		return prod(s.multiplier for s in self.splits)

	def cumulative_multiplier_after(self, block: int, log_index: int | None = None) -> int:
		"""
		Growth of an amount from `block` if still held today: splits strictly after it
		"""
		return prod(s.multiplier for s in self.splits if s.is_after(block, log_index))

	def cumulative_multiplier_through(self, block: int, log_index: int | None = None) -> int:
		"""Multiplier in force at `block` (splits at or before it)."""
		return prod(s.multiplier for s in self.splits if not s.is_after(block, log_index))

	def fixed_point_multiplier(self) -> int:
		"""Same convention as the contract's splitMultiplier()."""
		return self.cumulative_multiplier() * MULTIPLIER_BASE

	def fixed_point_multiplier_at(self, block: int, log_index: int | None = None) -> int:
		return self.cumulative_multiplier_through(block, log_index) * MULTIPLIER_BASE

	def __len__(self):
		return len(self.splits)
