import pytest

from core.errors import IntegrityViolation, InvalidInput, NotFound
from core.models import CorporateActionKind, RenamePayload, SplitPayload, TransferEvent

from .helpers import A, B, ZERO, transfer


@pytest.mark.django_db
class TestTransfers:

	def test_record_is_idempotent_on_tx_hash(self, store):
		assert store.record_transfer(transfer("0x01", ZERO, A, 100, 1)) is True
		assert store.record_transfer(transfer("0x01", ZERO, A, 999, 1)) is False
		assert TransferEvent.objects.count() == 1
		assert store.transfers_up_to(10)[0].amount == 100

	def test_addresses_are_stored_lowercase(self, store):
		store.record_transfer(transfer("0x01", ZERO, A.upper().replace("0X", "0x"), 5, 1))
		assert store.transfers()[0].to_address == A

	def test_amounts_beyond_64_bits_survive(self, store):
		big = 10 ** 30 + 7
		store.record_transfer(transfer("0x01", ZERO, A, big, 1))
		assert store.transfers_up_to(1)[0].amount == big

	def test_negative_amount_rejected(self, store):
		with pytest.raises(InvalidInput):
			store.record_transfer(transfer("0x01", ZERO, A, -1, 1))

	def test_ranges_and_ordering(self, store):
		store.record_transfer(transfer("0x03", A, B, 1, 5, log_index=1))
		store.record_transfer(transfer("0x01", ZERO, A, 10, 2))
		store.record_transfer(transfer("0x02", ZERO, A, 10, 5, log_index=0))
		assert [t.tx_hash for t in store.transfers_up_to(5)] == ["0x01", "0x02", "0x03"]
		assert [t.tx_hash for t in store.transfers_up_to(4)] == ["0x01"]
		assert [t.tx_hash for t in store.transfers_after(2)] == ["0x02", "0x03"]
		assert [t.tx_hash for t in store.transfers()] == ["0x03", "0x02", "0x01"]

	def test_filter_by_address_and_block(self, store):
		store.record_transfer(transfer("0x01", ZERO, A, 10, 1))
		store.record_transfer(transfer("0x02", A, B, 4, 2))
		store.record_transfer(transfer("0x03", ZERO, A, 1, 3))
		assert [t.tx_hash for t in store.transfers(address=B)] == ["0x02"]
		assert [t.tx_hash for t in store.transfers(address=A, block=2)] == ["0x02", "0x01"]


@pytest.mark.django_db
class TestCorporateActions:

	def test_identical_actions_are_both_kept(self, store):
		store.record_corporate_action(CorporateActionKind.SPLIT, SplitPayload(multiplier=2), 10, 1000)
		store.record_corporate_action(CorporateActionKind.SPLIT, SplitPayload(multiplier=2), 10, 1000)
		assert [a.payload for a in store.splits()] == [SplitPayload(2), SplitPayload(2)]

	def test_order_is_block_then_insertion(self, store):
		rename = RenamePayload(old_name="A", new_name="B", old_symbol="AAA", new_symbol="BBB")
		store.record_corporate_action(CorporateActionKind.SPLIT, SplitPayload(multiplier=3), 20, 1)
		store.record_corporate_action(CorporateActionKind.RENAME, rename, 10, 1)
		store.record_corporate_action(CorporateActionKind.SPLIT, SplitPayload(multiplier=2), 10, 1)
		actions = store.corporate_actions()
		assert [a.kind for a in actions] == ["rename", "split", "split"]
		assert actions[0].payload == rename
		assert [a.payload.multiplier for a in store.splits()] == [2, 3]

	def test_payload_must_match_kind(self, store):
		with pytest.raises(InvalidInput):
			store.record_corporate_action(CorporateActionKind.SPLIT, RenamePayload("a", "b", "c", "d"), 1, 1)
		with pytest.raises(InvalidInput):
			store.record_corporate_action("dividend", SplitPayload(2), 1, 1)


@pytest.mark.django_db
class TestAllowlist:

	def test_upsert_replaces(self, store):
		store.upsert_allowlist(A, True, 100, block=1)
		store.upsert_allowlist(A, False, 200, block=2)
		entry = store.allowlist_entry(A)
		assert (entry.approved, entry.timestamp, entry.block_number) == (False, 200, 2)
		assert store.allowlist() == []
		assert len(store.allowlist(approved_only=False)) == 1

	def test_older_block_is_ignored(self, store):
		store.upsert_allowlist(A, False, 200, block=5)
		store.upsert_allowlist(A, True, 100, block=3)
		assert store.allowlist_entry(A).approved is False

	def test_same_block_last_write_wins(self, store):
		store.upsert_allowlist(A, True, 100, block=5)
		store.upsert_allowlist(A, False, 100, block=5)
		assert store.allowlist_entry(A).approved is False

	def test_missing_entry(self, store):
		with pytest.raises(NotFound):
			store.allowlist_entry(B)


@pytest.mark.django_db
class TestCursor:

	def test_cursor_starts_empty_and_only_moves_forward(self, store):
		assert store.get_cursor() is None
		store.set_cursor(5)
		store.set_cursor(7)
		store.set_cursor(7)
		assert store.get_cursor() == 7
		with pytest.raises(IntegrityViolation):
			store.set_cursor(3)
		assert store.get_cursor() == 7


@pytest.mark.django_db
class TestBalances:

	def test_unknown_address(self, store):
		with pytest.raises(NotFound):
			store.balance(A)

	def test_add_and_scale(self, store):
		store.add_to_balance(A, 10)
		store.add_to_balance(B, -3)
		assert store.scale_balances(4) == 2
		assert store.balances() == {A: 40, B: -12}
