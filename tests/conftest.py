import pytest
from fakes import BASE, OTHER, QUOTE, FakeReader, FakeSession, FakeWallet, make_strategy

from carboncli.cache import ChainCache, pair_key
from carboncli.models import TokenPair


@pytest.fixture(autouse=True)
def no_private_key(monkeypatch):
    """Tests never see a real key unless they set one."""
    monkeypatch.delenv("PRIVATE_KEY", raising=False)


@pytest.fixture
def sample_strategy():
    return make_strategy()


@pytest.fixture
def sample_reader(sample_strategy):
    reader = FakeReader(
        pairs=[TokenPair(BASE, QUOTE), TokenPair(QUOTE, OTHER)],
        strategies={pair_key(BASE, QUOTE): [sample_strategy]},
    )
    reader.by_id[sample_strategy.id] = sample_strategy
    return reader


@pytest.fixture
def cache():
    return ChainCache()


@pytest.fixture
def wallet():
    return FakeWallet()


@pytest.fixture
def session(sample_reader, wallet):
    return FakeSession(reader=sample_reader, wallet=wallet)
