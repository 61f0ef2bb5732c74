"""Current-balance projection.

LedgerProjector is the only writer of AccountBalance. Each transfer is inserted
and applied in one atomic block, so the log and the projection never diverge;
a duplicate tx_hash is skipped, which makes replaying a block range safe.
"""

from __future__ import annotations

import logging

from .constants import ZERO_ADDRESS, normalize_address, parse_split_multiplier, validate_rename
from .models import CorporateActionKind, RenamePayload, SplitPayload
from .store import EventStore, Transfer

logger = logging.getLogger(__name__)


def transfer_deltas(from_address: str, to_address: str, amount: int) -> list[tuple[str, int]]:
	"""
	Balance changes caused by one transfer: mint credits only, burn debits only.
	The zero address itself never receives a delta.
	"""
	deltas = []
	if from_address != ZERO_ADDRESS:
		deltas.append((from_address, -amount))
	if to_address != ZERO_ADDRESS:
		deltas.append((to_address, amount))
	return deltas


class LedgerProjector:

	def __init__(self, store: EventStore):
		self.store = store

	def apply_transfer(self, event: Transfer) -> bool:
		"""
		Record + project. Returns False (and changes nothing) for a duplicate.
		"""
		with self.store.atomic():
			if not self.store.record_transfer(event):
				return False
			frm = normalize_address(event.from_address)
			to = normalize_address(event.to_address)
			for address, delta in transfer_deltas(frm, to, event.amount):
				new_balance = self.store.add_to_balance(address, delta)
				if new_balance < 0:
					# Kept signed; hidden only at presentation time
					logger.warning(
						"balance of %s went negative (%s) at block %s tx %s; possible missed event",
						address, new_balance, event.block_number, event.tx_hash,
					)
		return True

	def apply_split(self, multiplier: int, block: int, timestamp: int, *, tx_hash: str = "", log_index: int = 0):
		"""
		Record the split and grow every projected balance by `multiplier` in place.
		This is not a transfer: no TransferEvent is written.
		"""
		multiplier = parse_split_multiplier(multiplier)
		with self.store.atomic():
			action = self.store.record_corporate_action(
				CorporateActionKind.SPLIT, SplitPayload(multiplier=multiplier), block, timestamp,
				tx_hash=tx_hash, log_index=log_index,
			)
			touched = self.store.scale_balances(multiplier)
		logger.info("stock split x%s at block %s applied to %s balances", multiplier, block, touched)
		return action

	def apply_rename(self, old_name: str, new_name: str, old_symbol: str, new_symbol: str, block: int, timestamp: int, *, tx_hash: str = "", log_index: int = 0):
		new_name, new_symbol = validate_rename(new_name, new_symbol)
		payload = RenamePayload(old_name=old_name, new_name=new_name, old_symbol=old_symbol, new_symbol=new_symbol)
		action = self.store.record_corporate_action(
			CorporateActionKind.RENAME, payload, block, timestamp, tx_hash=tx_hash, log_index=log_index,
		)
		logger.info("rename %s (%s) -> %s (%s) at block %s", old_symbol, old_name, new_symbol, new_name, block)
		return action

	def apply_allowlist(self, address: str, approved: bool, block: int, timestamp: int):
		return self.store.upsert_allowlist(address, approved, timestamp, block=block)
