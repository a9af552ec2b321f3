"""Shared test fixtures."""

import pytest

from src.application.cache import KeyedCache
from src.infrastructure.config import Settings
from src.infrastructure.connection import ConnectionManager
from src.infrastructure.ledger_client import LedgerClient
from tests.fakes import ALICE, MARKETPLACE_ADDRESS, TOKEN_ADDRESS, FakeChain, FakeWeb3, StubWallet


@pytest.fixture
def settings() -> Settings:
    return Settings(
        RPC_URL="http://ledger.test:8545",
        TOKEN_CONTRACT_ADDRESS=TOKEN_ADDRESS,
        MARKETPLACE_CONTRACT_ADDRESS=MARKETPLACE_ADDRESS,
        MAX_BLOCK_RANGE=10,
        HISTORY_PAGE_SIZE=5,
        _env_file=None,
    )


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def web3_factory(chain: FakeChain):
    created = []

    def factory(rpc_url: str) -> FakeWeb3:
        web3 = FakeWeb3(chain)
        created.append(web3)
        return web3

    factory.created = created  # type: ignore[attr-defined]
    return factory


@pytest.fixture
def connection(settings: Settings, web3_factory) -> ConnectionManager:
    return ConnectionManager(settings, StubWallet(account=ALICE, signer_available=True), web3_factory=web3_factory)


@pytest.fixture
def read_only_connection(settings: Settings, web3_factory) -> ConnectionManager:
    return ConnectionManager(settings, StubWallet(account=ALICE, signer_available=False), web3_factory=web3_factory)


@pytest.fixture
def cache() -> KeyedCache:
    return KeyedCache()


@pytest.fixture
def client(connection: ConnectionManager, cache: KeyedCache, settings: Settings) -> LedgerClient:
    return LedgerClient(
        connection,
        cache=cache,
        max_block_range=settings.max_block_range,
        history_page_size=settings.history_page_size,
    )
