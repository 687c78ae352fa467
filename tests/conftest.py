import logging
import os
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from dishka import Provider, Scope, make_async_container, provide
from dishka.integrations.fastapi import FastapiProvider
from httpx import ASGITransport, AsyncClient

from fakes import FakeChainAccessor

# Set test environment variables before settings are loaded
os.environ["ENV_FILE"] = "/nonexistent.env"
os.environ["ETHERSCAN_API_KEY"] = "test"
os.environ["HISTORY_THROTTLE_SECONDS"] = "0"

from core.environment.providers import EnvironmentProvider  # noqa: E402
from core.logging.providers import LoggerProvider  # noqa: E402
from core.redis.providers import CacheService  # noqa: E402
from explorer.accessor import ChainDataAccessor  # noqa: E402
from explorer.providers import ExplorerProvider  # noqa: E402


class FakeChainProvider(Provider):
    """Serves a prepared in-memory chain instead of the web3 accessor."""

    component = "chain"

    def __init__(self, accessor: FakeChainAccessor):
        super().__init__()
        self.accessor = accessor

    @provide(scope=Scope.APP)
    def get_accessor(self) -> ChainDataAccessor:
        return self.accessor


class FakeCacheProvider(Provider):
    """Cache service over a mocked Redis client."""

    component = "cache"

    def __init__(self, redis_client: AsyncMock):
        super().__init__()
        self.redis_client = redis_client

    @provide(scope=Scope.APP)
    def get_cache(self) -> CacheService:
        return CacheService(self.redis_client, logger=logging.getLogger("chain_explorer"))


@pytest.fixture
def chain() -> FakeChainAccessor:
    """Empty fake chain at height 0; tests fill it in."""
    return FakeChainAccessor()


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("chain_explorer.tests")


@pytest_asyncio.fixture
async def mock_redis():
    """Mock Redis client for testing."""
    mock = AsyncMock()
    mock.ping = AsyncMock(return_value=True)
    mock.get = AsyncMock(return_value=None)
    mock.setex = AsyncMock(return_value=True)
    mock.aclose = AsyncMock()
    return mock


@pytest_asyncio.fixture
async def client(chain, mock_redis):
    """
    Fixture for async test client backed by the fake chain.

    Parameters
    ----------
    chain : FakeChainAccessor
        In-memory chain served to the explorer
    mock_redis : AsyncMock
        Mocked Redis client

    Yields
    ------
    AsyncClient
        Async HTTP client for testing
    """
    from main import create_app

    container = make_async_container(
        FastapiProvider(),
        EnvironmentProvider(),
        LoggerProvider(),
        FakeChainProvider(chain),
        FakeCacheProvider(mock_redis),
        ExplorerProvider(),
    )
    app = create_app(container)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await container.close()
