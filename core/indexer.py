"""Chain log indexer: the single logical writer of the event store.

Flow per poll: read the chain head, then walk (cursor+1 .. head) in bounded
chunks. Each chunk's logs are fetched first (with retry/backoff on transient
chain errors), then projected and the cursor advanced inside one atomic block
that holds the cursor row lock. A crash or cancellation therefore leaves the
cursor at the last fully committed chunk; replay is safe because transfers are
deduplicated by tx_hash.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass

from django.conf import settings

from .constants import parse_block
from .errors import ChainUnavailable, InvalidInput
from .projector import LedgerProjector
from .store import EventStore, Transfer

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
	from_block: int | None = None
	to_block: int | None = None
	chunks: int = 0
	events: int = 0
	transfers_recorded: int = 0
	cancelled: bool = False

	def as_dict(self):
		return {
			"from_block": self.from_block,
			"to_block": self.to_block,
			"chunks": self.chunks,
			"events": self.events,
			"transfers_recorded": self.transfers_recorded,
			"cancelled": self.cancelled,
		}


def _int(value) -> int:
	if isinstance(value, str) and value.startswith("0x"):
		return int(value, 16)
	return int(value)


class ChainIndexer:

	# Serialises writers inside one process; the cursor row lock covers the rest
	_write_lock = threading.Lock()

	def __init__(self, chain, store: EventStore, *, blocks_per_query: int | None = None, start_block: int | None = None,
				max_retries: int | None = None, backoff_seconds: float | None = None, sleep=time.sleep):
		self.chain = chain
		self.store = store
		self.projector = LedgerProjector(store)
		self.blocks_per_query = blocks_per_query or settings.INDEXER_BLOCKS_PER_QUERY
		self.start_block = settings.INDEXER_START_BLOCK if start_block is None else start_block
		self.max_retries = settings.INDEXER_MAX_RETRIES if max_retries is None else max_retries
		self.backoff_seconds = settings.INDEXER_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
		self._sleep = sleep
		if self.blocks_per_query < 1:
			raise InvalidInput("blocks_per_query must be at least 1")

	# --- Chain reads with bounded retry ---------------------------------------------

	def _with_retry(self, what: str, fn, *args):
		attempt = 0
		while True:
			try:
				return fn(*args)
			except ChainUnavailable as e:
				attempt += 1
				if attempt > self.max_retries:
					logger.error("%s failed after %s attempts: %s", what, attempt, e)
					raise
				delay = self.backoff_seconds * (2 ** (attempt - 1))
				logger.warning("%s failed (%s); retry %s/%s in %.1fs", what, e, attempt, self.max_retries, delay)
				self._sleep(delay)

	# --- Ranges ----------------------------------------------------------------------

	def next_block(self) -> int:
		cursor = self.store.get_cursor()
		return self.start_block if cursor is None else cursor + 1

	def chunks(self, from_block: int, to_block: int):
		"""Inclusive [start, end] pairs no wider than blocks_per_query."""
		start = from_block
		while start <= to_block:
			end = min(start + self.blocks_per_query - 1, to_block)
			yield start, end
			start = end + 1

	def sync(self, stop_event: threading.Event | None = None, to_block: int | None = None) -> SyncResult:
		"""
		Index from cursor+1 up to `to_block` (default: chain head). Stops between
		chunks when `stop_event` is set.
		"""
		head = self._with_retry("get_block_number", self.chain.get_block_number)
		target = head if to_block is None else min(parse_block(to_block), head)
		result = SyncResult()
		first = self.next_block()
		if first > target:
			return result
		result.from_block = first
		for start, end in self.chunks(first, target):
			if stop_event is not None and stop_event.is_set():
				result.cancelled = True
				logger.info("indexer cancelled before blocks %s-%s; cursor at %s", start, end, self.store.get_cursor())
				break
			events, recorded = self.index_range(start, end)
			result.chunks += 1
			result.events += events
			result.transfers_recorded += recorded
			result.to_block = end
		return result

	def index_range(self, from_block: int, to_block: int) -> tuple[int, int]:
		"""
		Fetch, project and commit one chunk; returns (logs seen, transfers newly recorded)
		"""
		logs = self._with_retry(
			f"get_logs({from_block}, {to_block})",
			self.chain.get_logs, from_block, to_block, getattr(self.chain, "contract_address", None),
		)
		logs = sorted(logs, key=lambda log: (_int(log["block_number"]), _int(log.get("log_index", 0))))
		recorded = 0
		with self._write_lock, self.store.atomic():
			cursor = self.store.lock_cursor()
			if cursor is not None and cursor >= to_block:
				# Another writer already committed this range
				logger.info("blocks %s-%s already indexed (cursor %s)", from_block, to_block, cursor)
				return 0, 0
			if cursor is not None and cursor >= from_block:
				# Partially committed by another writer: resume after its cursor
				logger.info("blocks %s-%s already indexed, resuming at %s", from_block, cursor, cursor + 1)
				logs = [log for log in logs if _int(log["block_number"]) > cursor]
			for log in logs:
				if self.handle_log(log):
					recorded += 1
			self.store.set_cursor(to_block)
		logger.info("indexed %s events in blocks %s-%s (%s new transfers)", len(logs), from_block, to_block, recorded)
		return len(logs), recorded

	# --- Event handlers --------------------------------------------------------------

	def handle_log(self, log: dict) -> bool:
		"""
		Apply one decoded log. Returns True only when a new transfer row was written.
		"""
		event = log.get("event")
		args = log.get("args") or {}
		block = _int(log["block_number"])
		log_index = _int(log.get("log_index", 0))
		if log.get("timestamp") is None:
			raise InvalidInput(f"log at block {block} index {log_index} has no timestamp")
		timestamp = _int(log["timestamp"])
		tx_hash = log.get("transaction_hash", "")

		if event == "Transfer":
			return self.projector.apply_transfer(Transfer(
				tx_hash=tx_hash,
				from_address=args["from"],
				to_address=args["to"],
				amount=_int(args["value"]),
				block_number=block,
				timestamp=timestamp,
				log_index=log_index,
			))
		if event == "Mint":
			# Also emitted as Transfer from the zero address; nothing to add
			logger.debug("mint of %s to %s at block %s", args.get("amount"), args.get("to"), block)
		elif event == "AllowlistUpdated":
			self.projector.apply_allowlist(args["account"], bool(args["approved"]), block, timestamp)
		elif event == "StockSplit":
			self.projector.apply_split(_int(args["multiplier"]), block, timestamp, tx_hash=tx_hash, log_index=log_index)
		elif event == "SymbolChanged":
			self.projector.apply_rename(
				args.get("oldName", ""), args["newName"], args.get("oldSymbol", ""), args["newSymbol"],
				block, timestamp, tx_hash=tx_hash, log_index=log_index,
			)
		else:
			logger.info("unknown event %r at block %s, skipping", event, block)
		return False

	# --- Background polling ----------------------------------------------------------

	def run_forever(self, stop_event: threading.Event, poll_interval: float | None = None):
		"""
		Catch up, then poll until `stop_event` is set. A failed poll is logged and
		retried on the next tick; committed chunks are never rolled back.
		"""
		interval = settings.INDEXER_POLL_INTERVAL if poll_interval is None else poll_interval
		logger.info("indexer starting at block %s", self.next_block())
		while not stop_event.is_set():
			try:
				self.sync(stop_event)
			except ChainUnavailable:
				logger.exception("poll failed; chain unavailable")
			stop_event.wait(interval)
		logger.info("indexer stopped; cursor at %s", self.store.get_cursor())

	def status(self) -> dict:
		return {"last_indexed_block": self.store.get_cursor(), "start_block": self.start_block}
