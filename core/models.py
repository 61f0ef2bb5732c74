"""Database models for the ledger.


Tables:
- TransferEvent: append-only mirror of on-chain Transfer logs (unique tx_hash)
- CorporateActionKind
- CorporateAction: append-only splits and renames, typed per kind
- AllowlistEntry: latest approval state per address
- IndexerCursor: singleton row with the last fully indexed block
- AccountBalance: current balance projection (authoritative source is chain)

Amounts are IntegerStringField: decimal strings in the database, ints in Python.
"""

from dataclasses import dataclass

from django.db import models
from django.db.models import Q

from .fields import IntegerStringField


class TransferEvent(models.Model):
	"""
	Immutable record of one Transfer log. Mint: from is the zero address; burn: to is.

	tx_hash is unique so re-indexing an overlapping range never double-applies.
	amount is the raw value emitted at block_number, in the units in force at that block.
	"""
	id = models.BigAutoField(primary_key=True)
	tx_hash = models.CharField(max_length=80, unique=True)
	from_address = models.CharField(max_length=42, db_index=True)
	to_address = models.CharField(max_length=42, db_index=True)
	amount = IntegerStringField()
	block_number = models.BigIntegerField(db_index=True)
	log_index = models.IntegerField(default=0)
	timestamp = models.BigIntegerField() # unix seconds of the block
	recorded_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ("block_number", "timestamp", "log_index")


class CorporateActionKind(models.TextChoices):
	SPLIT = "split", "Stock split"
	RENAME = "rename", "Rename"


@dataclass(frozen=True)
class SplitPayload:
	multiplier: int


@dataclass(frozen=True)
class RenamePayload:
	old_name: str
	new_name: str
	old_symbol: str
	new_symbol: str


class CorporateAction(models.Model):
	"""
	Splits and renames in insertion order. Columns are populated per kind
	(enforced by the check constraint); use .payload for the typed view.
	"""
	id = models.BigAutoField(primary_key=True)
	kind = models.CharField(max_length=10, choices=CorporateActionKind.choices)
	multiplier = IntegerStringField(null=True, blank=True)
	old_name = models.CharField(max_length=200, blank=True, default="")
	new_name = models.CharField(max_length=200, blank=True, default="")
	old_symbol = models.CharField(max_length=11, blank=True, default="")
	new_symbol = models.CharField(max_length=11, blank=True, default="")
	block_number = models.BigIntegerField(db_index=True)
	log_index = models.IntegerField(default=0)
	tx_hash = models.CharField(max_length=80, blank=True, default="")
	timestamp = models.BigIntegerField()
	recorded_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ("block_number", "id")
		constraints = [
			models.CheckConstraint(
				condition=(Q(kind="split") & Q(multiplier__isnull=False))
				| (Q(kind="rename") & Q(multiplier__isnull=True)),
				name="ck_corporate_action_payload_kind",
			),
		]

	@property
	def payload(self):
		if self.kind == CorporateActionKind.SPLIT:
			return SplitPayload(multiplier=int(self.multiplier))
		return RenamePayload(
			old_name=self.old_name,
			new_name=self.new_name,
			old_symbol=self.old_symbol,
			new_symbol=self.new_symbol,
		)


class AllowlistEntry(models.Model):
	"""
	Compliance gate mirror: one row per address, replaced on every update
	"""
	address = models.CharField(max_length=42, primary_key=True)
	approved = models.BooleanField(db_index=True)
	block_number = models.BigIntegerField(default=0)
	timestamp = models.BigIntegerField()


class IndexerCursor(models.Model):
	"""
	Singleton (id=1): last block whose events are all committed
	"""
	id = models.PositiveSmallIntegerField(primary_key=True, default=1)
	last_block = models.BigIntegerField()
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		constraints = [
			models.CheckConstraint(condition=Q(id=1), name="ck_indexer_cursor_singleton"),
		]


class AccountBalance(models.Model):
	"""
	Projected balance in current (post-split) units. Signed on purpose: a
	negative value means an event was missed and is only hidden at presentation.
	"""
	address = models.CharField(max_length=42, primary_key=True)
	balance = IntegerStringField(default=0)
	updated_at = models.DateTimeField(auto_now=True)
