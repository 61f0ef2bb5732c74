"""Append-only persistence for the ledger.

EventStore owns every persisted row: transfer events, corporate actions,
allowlist entries, the indexer cursor and the balance projection table. It is
bound to one database alias and handed to whoever needs it; there is no module
level connection.

All writes run inside transaction.atomic, so they are committed (or joined to
the caller's outer atomic block) before the method returns.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from .constants import normalize_address
from .errors import IntegrityViolation, InvalidInput, NotFound
from .models import (
	AccountBalance, AllowlistEntry, CorporateAction, CorporateActionKind, IndexerCursor,
	RenamePayload, SplitPayload, TransferEvent,
)

logger = logging.getLogger(__name__)

CURSOR_ID = 1


@dataclass(frozen=True)
class Transfer:
	"""
	A decoded Transfer log, before or after persistence
	"""
	tx_hash: str
	from_address: str
	to_address: str
	amount: int
	block_number: int
	timestamp: int
	log_index: int = 0

	@classmethod
	def from_row(cls, row: TransferEvent) -> "Transfer":
		return cls(
			tx_hash=row.tx_hash,
			from_address=row.from_address,
			to_address=row.to_address,
			amount=int(row.amount),
			block_number=row.block_number,
			timestamp=row.timestamp,
			log_index=row.log_index,
		)


class EventStore:

	def __init__(self, using: str = "default"):
		self.using = using

	def atomic(self):
		return transaction.atomic(using=self.using)

	# --- Transfers -------------------------------------------------------------

	def record_transfer(self, event: Transfer) -> bool:
		"""
		Insert the event unless its tx_hash is already stored.
		Returns True when a row was created; a duplicate delivery is a silent no-op.
		"""
		if event.amount < 0:
			raise InvalidInput("transfer amount must be non-negative")
		with self.atomic():
			_, created = TransferEvent.objects.using(self.using).get_or_create(
				tx_hash=event.tx_hash,
				defaults=dict(
					from_address=normalize_address(event.from_address),
					to_address=normalize_address(event.to_address),
					amount=event.amount,
					block_number=event.block_number,
					log_index=event.log_index,
					timestamp=event.timestamp,
				),
			)
		if not created:
			logger.debug("transfer %s already recorded, skipping", event.tx_hash)
		return created

	def _transfers(self):
		return TransferEvent.objects.using(self.using).order_by("block_number", "timestamp", "log_index", "id")

	def transfers_up_to(self, block: int) -> list[Transfer]:
		"""Transfers with block_number <= block, oldest first."""
		return [Transfer.from_row(r) for r in self._transfers().filter(block_number__lte=block)]

	def transfers_after(self, block: int) -> list[Transfer]:
		"""Transfers with block_number > block, oldest first (callers reverse)."""
		return [Transfer.from_row(r) for r in self._transfers().filter(block_number__gt=block)]

	def transfers(self, address: str | None = None, block: int | None = None) -> list[Transfer]:
		"""
		Newest first, optionally touching `address` and/or at or before `block`
		"""
		qs = self._transfers()
		if address:
			addr = normalize_address(address)
			qs = qs.filter(Q(from_address=addr) | Q(to_address=addr))
		if block is not None:
			qs = qs.filter(block_number__lte=block)
		rows = qs.order_by("-block_number", "-timestamp", "-log_index", "-id")
		return [Transfer.from_row(r) for r in rows]

	# --- Corporate actions -----------------------------------------------------

	def record_corporate_action(self, kind: str, payload, block: int, timestamp: int, *, tx_hash: str = "", log_index: int = 0) -> CorporateAction:
		"""
		Always inserts; actions are deduplicated upstream by the cursor, not by content
		"""
		fields = dict(kind=kind, block_number=block, timestamp=timestamp, tx_hash=tx_hash, log_index=log_index)
		if kind == CorporateActionKind.SPLIT:
			if not isinstance(payload, SplitPayload):
				raise InvalidInput("split requires a SplitPayload")
			fields["multiplier"] = payload.multiplier
		elif kind == CorporateActionKind.RENAME:
			if not isinstance(payload, RenamePayload):
				raise InvalidInput("rename requires a RenamePayload")
			fields.update(
				old_name=payload.old_name,
				new_name=payload.new_name,
				old_symbol=payload.old_symbol,
				new_symbol=payload.new_symbol,
			)
		else:
			raise InvalidInput(f"unknown corporate action kind: {kind!r}")
		with self.atomic():
			return CorporateAction.objects.using(self.using).create(**fields)

	def corporate_actions(self) -> list[CorporateAction]:
		"""Block ascending; same-block actions keep insertion order."""
		return list(CorporateAction.objects.using(self.using).order_by("block_number", "id"))

	def splits(self) -> list[CorporateAction]:
		return [a for a in self.corporate_actions() if a.kind == CorporateActionKind.SPLIT]

	# --- Allowlist -------------------------------------------------------------

	def upsert_allowlist(self, address: str, approved: bool, timestamp: int, block: int | None = None) -> AllowlistEntry:
		"""
		Replace the entry for `address`. An update from an older block than the
		stored one is a late delivery and is ignored; same-block updates win by arrival.
		"""
		addr = normalize_address(address)
		with self.atomic():
			entry = AllowlistEntry.objects.using(self.using).select_for_update().filter(address=addr).first()
			if entry is None:
				return AllowlistEntry.objects.using(self.using).create(
					address=addr, approved=bool(approved), timestamp=timestamp, block_number=block or 0,
				)
			if block is not None and block < entry.block_number:
				logger.info("ignoring stale allowlist update for %s (block %s < %s)", addr, block, entry.block_number)
				return entry
			entry.approved = bool(approved)
			entry.timestamp = timestamp
			if block is not None:
				entry.block_number = block
			entry.save(using=self.using, update_fields=["approved", "timestamp", "block_number"])
			return entry

	def allowlist_entry(self, address: str) -> AllowlistEntry:
		addr = normalize_address(address)
		try:
			return AllowlistEntry.objects.using(self.using).get(address=addr)
		except AllowlistEntry.DoesNotExist:
			raise NotFound(f"no allowlist entry for {addr}")

	def allowlist(self, approved_only: bool = True) -> list[AllowlistEntry]:
		qs = AllowlistEntry.objects.using(self.using).order_by("-timestamp", "address")
		if approved_only:
			qs = qs.filter(approved=True)
		return list(qs)

	# --- Cursor ----------------------------------------------------------------

	def get_cursor(self) -> int | None:
		row = IndexerCursor.objects.using(self.using).filter(id=CURSOR_ID).first()
		return row.last_block if row else None

	def lock_cursor(self) -> int | None:
		"""
		Must be called inside atomic(): row-locks the cursor for the single writer
		"""
		row = IndexerCursor.objects.using(self.using).select_for_update().filter(id=CURSOR_ID).first()
		return row.last_block if row else None

	def set_cursor(self, block: int) -> None:
		with self.atomic():
			row = IndexerCursor.objects.using(self.using).select_for_update().filter(id=CURSOR_ID).first()
			if row is None:
				IndexerCursor.objects.using(self.using).create(id=CURSOR_ID, last_block=block)
				return
			if block < row.last_block:
				raise IntegrityViolation(f"indexer cursor cannot move backwards ({row.last_block} -> {block})")
			row.last_block = block
			row.save(using=self.using, update_fields=["last_block", "updated_at"])

	# --- Balance projection ----------------------------------------------------

	def balance(self, address: str) -> AccountBalance:
		addr = normalize_address(address)
		try:
			return AccountBalance.objects.using(self.using).get(address=addr)
		except AccountBalance.DoesNotExist:
			raise NotFound(f"no balance recorded for {addr}")

	def balances(self) -> dict[str, int]:
		"""
		Every projected balance, signed and including zeros
		"""
		return {row.address: int(row.balance) for row in AccountBalance.objects.using(self.using).order_by("address")}

	def add_to_balance(self, address: str, delta: int) -> int:
		"""
		Projection writer only (LedgerProjector). Returns the new signed balance.
		"""
		with self.atomic():
			row, _ = AccountBalance.objects.using(self.using).select_for_update().get_or_create(
				address=address, defaults={"balance": 0},
			)
			row.balance = int(row.balance) + delta
			row.save(using=self.using, update_fields=["balance", "updated_at"])
			return row.balance

	def scale_balances(self, multiplier: int) -> int:
		"""
		Projection writer only: multiply every balance in place. Returns rows touched.
		"""
		with self.atomic():
			rows = list(AccountBalance.objects.using(self.using).select_for_update())
			now = timezone.now()
			for row in rows:
				row.balance = int(row.balance) * multiplier
				row.updated_at = now
			AccountBalance.objects.using(self.using).bulk_update(rows, ["balance", "updated_at"])
			return len(rows)
