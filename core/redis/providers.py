from dishka import Provider, Scope, provide, FromComponent
from typing import Annotated, Any, AsyncIterable
from core.environment.config import Settings
from redis.asyncio import Redis
from redis.exceptions import RedisError
import json
import logging


class RedisProvider(Provider):
    """
    Provider for Redis client.
    """

    scope = Scope.APP
    component = "redis"

    @provide(scope=Scope.APP)
    async def provide_redis_client(
        self,
        settings: Annotated[Settings, FromComponent("environment")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> AsyncIterable[Redis]:
        """
        Create Redis client for the application.

        An unreachable Redis is logged and tolerated: the cache degrades
        to a miss on every lookup.

        Parameters
        ----------
        settings : Settings
            Application settings
        logger : logging.Logger
            Logger instance

        Yields
        ------
        Redis
            Redis client instance
        """
        redis_client = Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            password=settings.redis_password if settings.redis_password else None,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )

        try:
            await redis_client.ping()
        except (RedisError, OSError) as e:
            logger.warning(f"Redis is unavailable, caching disabled until it recovers: {e}")

        try:
            yield redis_client
        finally:
            await redis_client.aclose()


class CacheService:
    """
    JSON cache on top of Redis.

    Every failure is reported as a miss so that callers fall back to the
    chain node.

    Parameters
    ----------
    redis_client : Redis
        Redis client instance
    logger : logging.Logger | None
        Logger for cache errors
    prefix : str
        Namespace prepended to every key
    """

    def __init__(
        self,
        redis_client: Redis,
        logger: logging.Logger | None = None,
        prefix: str = "explorer"
    ):
        self.redis = redis_client
        self.logger = logger or logging.getLogger("chain_explorer")
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def get(self, key: str) -> Any | None:
        """
        Get cached value.

        Parameters
        ----------
        key : str
            Cache key

        Returns
        -------
        Any | None
            Cached value or None
        """
        try:
            value = await self.redis.get(self._key(key))
            if value:
                return json.loads(value)
        except (RedisError, OSError, ValueError) as e:
            self.logger.debug(f"Cache read error for {key}: {e}")
        return None

    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """
        Set cached value.

        Parameters
        ----------
        key : str
            Cache key
        value : Any
            JSON-serializable value
        ttl : int
            Time to live in seconds

        Returns
        -------
        bool
            Success status
        """
        try:
            await self.redis.setex(
                self._key(key),
                ttl,
                json.dumps(value)
            )
            return True
        except (RedisError, OSError, TypeError, ValueError) as e:
            self.logger.debug(f"Cache write error for {key}: {e}")
            return False


class CacheProvider(Provider):
    """
    Provider for cache service.
    """

    component = "cache"
    scope = Scope.APP

    @provide(scope=Scope.APP)
    def provide_cache_service(
        self,
        redis_client: Annotated[Redis, FromComponent("redis")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> CacheService:
        return CacheService(redis_client, logger=logger)
