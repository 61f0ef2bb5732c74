"""Point-in-time balances rebuilt from the transfer log.

Two independent strategies answer "who held what at block B":

- replay_forward: start empty, apply every transfer at or before B, oldest first.
- reverse_from_current: start from today's authoritative balances and undo every
  transfer after B, newest first.

Amount convention: a stored amount is in the units in force at its own block;
a split grows every holder in place. Both strategies therefore report balances
in today's (split-adjusted) units:

- forward never multiplies balances at split points; it scales each amount by
  the splits that happened after it (cumulative_multiplier_after).
- backward scales each reversed amount by current_multiplier / multiplier_at(event),
  both fixed point with base 1e18. For an event older than every split this is
  the plain raw * current_multiplier / 1e18.

Under this convention the two must agree exactly; when they do not, an event
was missed and HistoricalReconstructor.cross_check raises instead of guessing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from .constants import ZERO_ADDRESS, normalize_address, parse_block
from .corporate_actions import CorporateActionLedger
from .errors import IntegrityViolation, InvalidInput, NegativeBalance, ReconstructionMismatch
from .projector import transfer_deltas
from .store import EventStore, Transfer

logger = logging.getLogger(__name__)

FORWARD = "forward"
BACKWARD = "backward"
STRATEGIES = (FORWARD, BACKWARD)


def _position(tx: Transfer):
	return (tx.block_number, tx.timestamp, tx.log_index)


@dataclass(frozen=True)
class Snapshot:
	"""
	Signed balances as of `block`, in today's units. `scale` converts to the
	units in force at `block` (exact division).
	"""
	block: int
	balances: Mapping[str, int]
	scale: int = 1
	strategy: str = FORWARD
	events_applied: int = field(default=0, compare=False)

	@property
	def holdings(self) -> dict[str, int]:
		"""Positive balances only; zero and negative rows are not shown."""
		return {a: b for a, b in self.balances.items() if b > 0}

	@property
	def deficits(self) -> dict[str, int]:
		return {a: b for a, b in self.balances.items() if b < 0}

	@property
	def total(self) -> int:
		return sum(self.holdings.values())

	def balance_of(self, address: str) -> int:
		return max(self.balances.get(normalize_address(address), 0), 0)

	def in_block_units(self) -> dict[str, int]:
		return {a: b // self.scale for a, b in self.holdings.items()}


def replay_forward(transfers: Iterable[Transfer], block: int, ledger: CorporateActionLedger) -> Snapshot:
	balances: dict[str, int] = {}
	applied = 0
	for tx in sorted((t for t in transfers if t.block_number <= block), key=_position):
		amount = tx.amount * ledger.cumulative_multiplier_after(tx.block_number, tx.log_index)
		for address, delta in transfer_deltas(tx.from_address, tx.to_address, amount):
			balances[address] = balances.get(address, 0) + delta
		applied += 1
	return Snapshot(
		block=block,
		balances=balances,
		scale=ledger.cumulative_multiplier_after(block),
		strategy=FORWARD,
		events_applied=applied,
	)


def reverse_from_current(current: Mapping[str, int], transfers: Iterable[Transfer], block: int, ledger: CorporateActionLedger, current_multiplier: int | None = None) -> Snapshot:
	"""
	Undo every transfer after `block`, newest first, starting from `current`
	(balances that already include every split).
	"""
	if current_multiplier is None:
		current_multiplier = ledger.fixed_point_multiplier()
	balances = {normalize_address(a): int(b) for a, b in current.items()}
	balances.pop(ZERO_ADDRESS, None)
	applied = 0
	for tx in sorted((t for t in transfers if t.block_number > block), key=_position, reverse=True):
		amount = tx.amount * current_multiplier // ledger.fixed_point_multiplier_at(tx.block_number, tx.log_index)
		for address, delta in transfer_deltas(tx.from_address, tx.to_address, amount):
			balances[address] = balances.get(address, 0) - delta
		applied += 1
	return Snapshot(
		block=block,
		balances=balances,
		scale=ledger.cumulative_multiplier_after(block),
		strategy=BACKWARD,
		events_applied=applied,
	)


def diff_snapshots(a: Snapshot, b: Snapshot) -> dict[str, tuple[int, int]]:
	"""
	address -> (a, b) for every address whose non-zero balances differ
	"""
	out = {}
	for address in set(a.balances) | set(b.balances):
		left, right = a.balances.get(address, 0), b.balances.get(address, 0)
		if left != right:
			out[address] = (left, right)
	return out


class HistoricalReconstructor:
	"""
	Binds the pure strategies to an EventStore and, optionally, a chain adapter
	that supplies today's balances and split multiplier for the backward path.
	"""

	def __init__(self, store: EventStore, chain=None):
		self.store = store
		self.chain = chain

	def ledger(self) -> CorporateActionLedger:
		return CorporateActionLedger.from_store(self.store)

	def forward(self, block: int) -> Snapshot:
		block = parse_block(block)
		return replay_forward(self.store.transfers_up_to(block), block, self.ledger())

	def current_balances(self) -> dict[str, int]:
		"""
		Live balances from the chain for every address the log knows about;
		falls back to the local projection when no chain is attached.
		"""
		if self.chain is None:
			return self.store.balances()
		addresses = set()
		for tx in self.store.transfers():
			addresses.update((tx.from_address, tx.to_address))
		addresses.discard(ZERO_ADDRESS)
		return {a: self.chain.read_balance(a) for a in sorted(addresses)}

	def current_multiplier(self, ledger: CorporateActionLedger) -> int:
		local = ledger.fixed_point_multiplier()
		if self.chain is None:
			return local
		onchain = self.chain.read_split_multiplier()
		if onchain != local:
			raise IntegrityViolation(
				f"chain split multiplier {onchain} does not match indexed splits {local}; a split event was missed"
			)
		return onchain

	def ensure_caught_up(self) -> None:
		"""
		Live chain state only explains the log once every block up to the head is indexed
		"""
		head = self.chain.get_block_number()
		cursor = self.store.get_cursor()
		if cursor is None or cursor < head:
			raise IntegrityViolation(f"indexer behind chain head (indexed through {cursor}, head {head}); sync before reversing")

	def backward(self, block: int, current_balances: Mapping[str, int] | None = None) -> Snapshot:
		block = parse_block(block)
		if self.chain is not None:
			self.ensure_caught_up()
		ledger = self.ledger()
		multiplier = self.current_multiplier(ledger)
		if current_balances is None:
			current_balances = self.current_balances()
		return reverse_from_current(current_balances, self.store.transfers_after(block), block, ledger, multiplier)

	def balances_as_of(self, block: int, strategy: str = FORWARD, strict: bool = True) -> Snapshot:
		if strategy not in STRATEGIES:
			raise InvalidInput(f"strategy must be one of {', '.join(STRATEGIES)}")
		snapshot = self.forward(block) if strategy == FORWARD else self.backward(block)
		if strict and snapshot.deficits:
			logger.error("negative balances at block %s (%s): %s", block, strategy, snapshot.deficits)
			raise NegativeBalance(snapshot.block, snapshot.deficits)
		return snapshot

	def cross_check(self, block: int, current_balances: Mapping[str, int] | None = None) -> Snapshot:
		"""
		Run both strategies; return the forward snapshot when they agree
		"""
		forward = self.forward(block)
		backward = self.backward(block, current_balances)
		differences = diff_snapshots(forward, backward)
		if differences:
			logger.error("reconstruction mismatch at block %s on %s addresses", block, len(differences))
			raise ReconstructionMismatch(forward.block, differences)
		return forward
