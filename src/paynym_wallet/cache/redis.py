"""Redis store backend for shared or multi-process wallets."""

from __future__ import annotations

from typing import TYPE_CHECKING

from redis.asyncio import Redis

from paynym_wallet.errors.definitions import ErrStoreNotConnected

if TYPE_CHECKING:
    from paynym_wallet.config.settings import CacheConfig


class RedisStore:
    """String key-value store on redis-py's asyncio client.

    Values are decoded to ``str`` on the way out; TTLs map to ``SETEX``.
    """

    def __init__(self, config: CacheConfig) -> None:
        self._config = config
        self._redis: Redis | None = None

    async def connect(self) -> None:
        """Open the connection pool and check the server answers.

        Raises:
            ConnectionError: If the server does not answer PING.
        """
        redis = Redis.from_url(
            self._config.url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=self._config.max_connections,
        )
        try:
            await redis.ping()
        except Exception as exc:
            msg = f"Redis store unreachable at {self._config.url}"
            raise ConnectionError(msg) from exc
        self._redis = redis

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    def _conn(self) -> Redis:
        if self._redis is None:
            raise ErrStoreNotConnected
        return self._redis

    async def get(self, key: str) -> str | None:
        return await self._conn().get(key)

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        """Store ``value``; ``ttl`` in seconds, None keeps it until deleted."""
        if ttl is None:
            await self._conn().set(key, value)
        else:
            await self._conn().setex(key, ttl, value)

    async def delete(self, key: str) -> None:
        await self._conn().delete(key)

    async def exists(self, key: str) -> bool:
        return await self._conn().exists(key) > 0

    async def keys(self, prefix: str = "") -> list[str]:
        """Keys starting with ``prefix``, walked with incremental SCAN."""
        return [key async for key in self._conn().scan_iter(match=f"{prefix}*")]
