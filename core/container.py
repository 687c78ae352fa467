from dishka import make_async_container
from dishka.integrations.fastapi import FastapiProvider

from core.environment.providers import EnvironmentProvider
from core.logging.providers import LoggerProvider
from core.redis.providers import RedisProvider, CacheProvider
from explorer.providers import ChainProvider, ExplorerProvider

container = make_async_container(
    FastapiProvider(),
    EnvironmentProvider(),
    LoggerProvider(),
    RedisProvider(),
    CacheProvider(),
    ChainProvider(),
    ExplorerProvider()
)
