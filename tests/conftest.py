"""
Starchain test fixtures
"""

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from starchain.api import create_app
from starchain.chain import ChainManager
from starchain.mempool import RequestMempool
from starchain.registry import StarRegistry
from starchain.store import BlockStore

T0 = 1_700_000_000.0


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, now: float = T0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Wallet:
    def __init__(self):
        self.key = Ed25519PrivateKey.generate()
        self.address = self.key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        ).hex()

    def sign(self, message: str) -> str:
        return self.key.sign(message.encode("utf-8")).hex()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path):
    s = BlockStore(str(tmp_path / "chain.db"))
    yield s
    s.close()


@pytest.fixture
def empty_chain(store, clock):
    """Chain over an empty store (no genesis)."""
    return ChainManager(store, clock=clock)


@pytest.fixture
def chain(empty_chain):
    empty_chain.initialize()
    return empty_chain


@pytest.fixture
def mempool(clock):
    m = RequestMempool(window_sec=300, clock=clock)
    yield m
    m.stop()


@pytest.fixture
def registry(chain, mempool):
    return StarRegistry(chain, mempool)


@pytest.fixture
def client(registry):
    app = create_app(registry, sweep_interval_sec=0)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def wallet():
    return Wallet()


@pytest.fixture
def other_wallet():
    return Wallet()
