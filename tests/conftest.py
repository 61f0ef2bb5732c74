import pytest

from core.adapters.chain_adapter import ChainAdapter
from core.projector import LedgerProjector
from core.store import EventStore

from .helpers import A, B, C


@pytest.fixture
def store(db):
	return EventStore()


@pytest.fixture
def projector(store):
	return LedgerProjector(store)


@pytest.fixture
def chain(db):
	return ChainAdapter()


@pytest.fixture
def allowlisted_chain(chain):
	for address in (A, B, C):
		chain.set_allowlist(address, True)
	return chain
