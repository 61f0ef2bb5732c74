import threading

import pytest
from django.core.management import call_command

from core.constants import MULTIPLIER_BASE
from core.errors import ChainUnavailable, IntegrityViolation, InvalidInput
from core.indexer import ChainIndexer
from core.models import TransferEvent
from core.reconstruction import HistoricalReconstructor

from .helpers import A, B, C, ZERO, FakeChain, split_log, transfer_log


@pytest.fixture
def history(allowlisted_chain):
	"""
	Blocks 1-3 allowlist A, B, C; then mint, transfer, split x7, transfer, burn, rename
	"""
	chain = allowlisted_chain
	chain.mint(A, 10000)
	chain.transfer(A, B, 3000)
	chain.execute_split(7)
	chain.transfer(B, C, 1000)
	chain.burn(A, 9000)
	chain.change_symbol("ChainEquity Preferred", "CEQP")
	return chain


def make_indexer(chain, store, **kwargs):
	kwargs.setdefault("blocks_per_query", 2)
	kwargs.setdefault("sleep", lambda seconds: None)
	return ChainIndexer(chain, store, **kwargs)


@pytest.mark.django_db
class TestSyncAgainstStubChain:

	def test_mirrors_the_chain(self, history, store):
		result = make_indexer(history, store).sync()
		assert history.get_block_number() == 9
		assert result.as_dict() == {
			"from_block": 0,
			"to_block": 9,
			"chunks": 5,
			"events": 10,
			"transfers_recorded": 4,
			"cancelled": False,
		}
		assert store.get_cursor() == 9
		assert store.balances() == {A: 40000, B: 20000, C: 1000}
		assert {a: history.read_balance(a) for a in (A, B, C)} == store.balances()
		assert sum(store.balances().values()) == history.read_total_supply()
		assert len(store.allowlist()) == 3

	def test_corporate_actions_are_recorded(self, history, store):
		make_indexer(history, store).sync()
		split, rename = store.corporate_actions()
		assert (split.block_number, split.payload.multiplier) == (6, 7)
		assert rename.payload.old_symbol == "CEQ"
		assert rename.payload.new_symbol == "CEQP"

	def test_reconstruction_agrees_with_chain_at_every_block(self, history, store):
		make_indexer(history, store).sync()
		rec = HistoricalReconstructor(store, history)
		assert rec.current_multiplier(rec.ledger()) == 7 * MULTIPLIER_BASE
		for block in range(0, 10):
			rec.cross_check(block)
		assert rec.forward(5).in_block_units() == {A: 7000, B: 3000}

	def test_second_sync_is_a_no_op(self, history, store):
		indexer = make_indexer(history, store)
		indexer.sync()
		again = indexer.sync()
		assert again.chunks == 0
		assert again.from_block is None
		assert store.get_cursor() == 9

	def test_incremental_sync_starts_after_cursor(self, history, store):
		indexer = make_indexer(history, store)
		indexer.sync()
		history.mint(C, 5)
		result = indexer.sync()
		assert (result.from_block, result.to_block, result.transfers_recorded) == (10, 10, 1)
		assert store.balances()[C] == 1005

	def test_sync_to_block_is_capped(self, history, store):
		result = make_indexer(history, store).sync(to_block=5)
		assert result.to_block == 5
		assert store.get_cursor() == 5
		assert store.balances() == {A: 7000, B: 3000}

	def test_replaying_transfers_changes_nothing(self, history, store):
		indexer = make_indexer(history, store)
		indexer.sync()
		before = store.balances()
		replayed = [log for log in history.get_logs(0, 9) if log["event"] == "Transfer"]
		assert replayed
		assert not any(indexer.handle_log(log) for log in replayed)
		assert store.balances() == before
		assert TransferEvent.objects.count() == 4

	def test_backward_reports_unindexed_chain_activity(self, history, store):
		make_indexer(history, store).sync()
		history.transfer(A, C, 500)
		rec = HistoricalReconstructor(store, history)
		with pytest.raises(IntegrityViolation, match="indexer behind chain head"):
			rec.balances_as_of(4, strategy="backward")
		make_indexer(history, store).sync()
		assert rec.cross_check(4).holdings == {A: 70000}

	def test_status(self, history, store):
		indexer = make_indexer(history, store, start_block=1)
		assert indexer.status() == {"last_indexed_block": None, "start_block": 1}
		indexer.sync()
		assert indexer.status()["last_indexed_block"] == 9

	def test_management_command_once(self, history, store, capsys):
		call_command("run_indexer", "--once")
		assert store.get_cursor() == 9
		assert "cursor at 9" in capsys.readouterr().out


@pytest.mark.django_db
class TestChunking:

	def test_chunks_are_inclusive_and_bounded(self, store):
		indexer = make_indexer(FakeChain(), store)
		assert list(indexer.chunks(0, 4)) == [(0, 1), (2, 3), (4, 4)]
		assert list(indexer.chunks(5, 5)) == [(5, 5)]
		assert list(indexer.chunks(6, 5)) == []

	def test_ranges_requested_from_the_chain(self, store):
		chain = FakeChain(head=4)
		make_indexer(chain, store, blocks_per_query=3, start_block=1).sync()
		assert chain.calls == [(1, 3), (4, 4)]
		assert store.get_cursor() == 4

	def test_next_block(self, store):
		indexer = make_indexer(FakeChain(), store, start_block=5)
		assert indexer.next_block() == 5
		store.set_cursor(7)
		assert indexer.next_block() == 8

	def test_stub_rejects_oversized_ranges(self, chain, store):
		with pytest.raises(InvalidInput):
			make_indexer(chain, store, blocks_per_query=chain.max_log_range + 1).index_range(0, chain.max_log_range)

	def test_overlapping_writer_does_not_reapply_split(self, store):
		logs = [
			transfer_log("0x01", ZERO, A, 100, 1),
			split_log("0x02", 2, 2),
			transfer_log("0x03", A, B, 10, 4),
		]

		class RacingChain(FakeChain):
			raced = False

			def get_logs(self, from_block, to_block, address=None):
				fetched = super().get_logs(from_block, to_block, address)
				if not self.raced:
					# A second writer commits blocks 0-3 while this chunk is in flight
					self.raced = True
					make_indexer(FakeChain(self.logs), store).sync(to_block=3)
				return fetched

		make_indexer(RacingChain(logs), store, blocks_per_query=5).sync()
		assert store.get_cursor() == 4
		assert store.balances() == {A: 190, B: 10}
		assert len(store.splits()) == 1
		assert TransferEvent.objects.count() == 2

	def test_already_indexed_range_is_skipped(self, store):
		chain = FakeChain([transfer_log("0x01", ZERO, A, 100, 3)])
		store.set_cursor(5)
		assert make_indexer(chain, store).index_range(3, 4) == (0, 0)
		assert store.balances() == {}


@pytest.mark.django_db
class TestLogHandling:

	def test_hex_encoded_fields(self, store):
		log = transfer_log("0x01", ZERO, A, 0, 1)
		log.update(block_number="0x1", args={"from": ZERO, "to": A, "value": "0x64"})
		make_indexer(FakeChain([log], head=1), store).sync()
		assert store.balances() == {A: 100}

	def test_unknown_events_are_skipped(self, store):
		logs = [
			{"block_number": 1, "log_index": 0, "transaction_hash": "0x09", "event": "Paused", "args": {}, "timestamp": 1001},
			transfer_log("0x01", ZERO, A, 100, 1, log_index=1),
		]
		result = make_indexer(FakeChain(logs), store).sync()
		assert (result.events, result.transfers_recorded) == (2, 1)
		assert store.get_cursor() == 1

	def test_logs_are_applied_in_chain_order(self, store):
		logs = [
			transfer_log("0x02", A, B, 40, 1, log_index=2),
			split_log("0x03", 2, 1, log_index=1),
			transfer_log("0x01", ZERO, A, 100, 1, log_index=0),
		]
		make_indexer(FakeChain(logs), store).sync()
		assert store.balances() == {A: 160, B: 40}

	def test_zero_timestamp_is_kept(self, store):
		log = transfer_log("0x01", ZERO, A, 5, 1)
		log["timestamp"] = 0
		make_indexer(FakeChain([log]), store).sync()
		assert store.transfers()[0].timestamp == 0

	def test_missing_timestamp_is_rejected(self, store):
		log = transfer_log("0x01", ZERO, A, 5, 1)
		del log["timestamp"]
		with pytest.raises(InvalidInput, match="no timestamp"):
			make_indexer(FakeChain([log]), store).sync()
		assert store.get_cursor() is None

	def test_bad_event_rolls_back_the_whole_chunk(self, store):
		logs = [
			transfer_log("0x01", ZERO, A, 100, 1),
			split_log("0x02", 1, 1, log_index=1),
		]
		with pytest.raises(InvalidInput):
			make_indexer(FakeChain(logs), store).sync()
		assert TransferEvent.objects.count() == 0
		assert store.balances() == {}
		assert store.get_cursor() is None


@pytest.mark.django_db
class TestRetryAndCancellation:

	def test_transient_failures_back_off_exponentially(self, store):
		sleeps = []
		chain = FakeChain([transfer_log("0x01", ZERO, A, 100, 1)], failures=2)
		indexer = make_indexer(chain, store, max_retries=3, backoff_seconds=0.5, sleep=sleeps.append)
		indexer.sync()
		assert sleeps == [0.5, 1.0]
		assert store.balances() == {A: 100}

	def test_gives_up_after_max_retries(self, store):
		sleeps = []
		chain = FakeChain([transfer_log("0x01", ZERO, A, 100, 1)], failures=10)
		indexer = make_indexer(chain, store, max_retries=2, backoff_seconds=0.5, sleep=sleeps.append)
		with pytest.raises(ChainUnavailable):
			indexer.sync()
		assert sleeps == [0.5, 1.0]
		assert store.get_cursor() is None

	def test_cancelled_before_any_chunk(self, store):
		stop = threading.Event()
		stop.set()
		result = make_indexer(FakeChain([transfer_log("0x01", ZERO, A, 100, 1)]), store).sync(stop)
		assert result.cancelled
		assert result.chunks == 0
		assert store.get_cursor() is None

	def test_cancel_between_chunks_keeps_committed_work(self, store):
		stop = threading.Event()

		class StoppingChain(FakeChain):
			def get_logs(self, from_block, to_block, address=None):
				stop.set()
				return super().get_logs(from_block, to_block, address)

		chain = StoppingChain([transfer_log("0x01", ZERO, A, 100, 1), transfer_log("0x02", ZERO, B, 5, 2)])
		result = make_indexer(chain, store, blocks_per_query=1, start_block=1).sync(stop)
		assert result.cancelled
		assert result.to_block == 1
		assert store.get_cursor() == 1
		assert store.balances() == {A: 100}

	def test_run_forever_exits_when_stopped(self, store):
		stop = threading.Event()

		class StoppingChain(FakeChain):
			def get_logs(self, from_block, to_block, address=None):
				logs = super().get_logs(from_block, to_block, address)
				stop.set()
				return logs

		chain = StoppingChain([transfer_log("0x01", ZERO, A, 100, 1)])
		make_indexer(chain, store, start_block=1).run_forever(stop, poll_interval=0)
		assert store.get_cursor() == 1

	def test_run_forever_survives_chain_outage(self, store, caplog):
		stop = threading.Event()

		class DownChain(FakeChain):
			def get_logs(self, from_block, to_block, address=None):
				stop.set()
				raise ChainUnavailable("connection refused")

		make_indexer(DownChain(head=3), store, max_retries=0).run_forever(stop, poll_interval=0)
		assert store.get_cursor() is None
		assert "chain unavailable" in caplog.text
