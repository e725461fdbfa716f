"""Key-value store abstraction with Redis and in-memory backends.

Backs both the directory response cache and persisted contact state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from paynym_wallet.errors.definitions import ErrStoreNotConnected

if TYPE_CHECKING:
    from paynym_wallet.config.settings import CacheConfig


class StoreClient:
    """Store facade that delegates to a Redis or in-memory backend."""

    def __init__(self, config: CacheConfig) -> None:
        """Initialize the store client.

        Args:
            config: Cache configuration with engine type and connection params.
        """
        self._config = config
        self._backend: StoreBackend | None = None
        self._connected = False

    async def connect(self) -> None:
        """Connect to the configured backend.

        Raises:
            ValueError: If the engine type is invalid.
        """
        from paynym_wallet.cache.memory import MemoryStore
        from paynym_wallet.cache.redis import RedisStore

        engine = str(self._config.engine).lower()

        if engine == "redis":
            self._backend = RedisStore(self._config)
        elif engine == "memory":
            self._backend = MemoryStore(self._config)
        else:
            msg = f"Unsupported cache engine: {engine}"
            raise ValueError(msg)

        await self._backend.connect()
        self._connected = True

    async def close(self) -> None:
        """Close the backend connection (idempotent)."""
        if self._backend is not None:
            await self._backend.close()
            self._backend = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        """Check if the store is connected."""
        return self._connected and self._backend is not None

    async def get(self, key: str) -> str | None:
        """Return the value for ``key``, or None when absent or expired."""
        return await self._require().get(key)

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        """Store ``value`` under ``key``.

        Args:
            key: Store key.
            value: String value.
            ttl: Time-to-live in seconds. None = no expiry.
        """
        await self._require().set(key, value, ttl=ttl)

    async def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
        await self._require().delete(key)

    async def exists(self, key: str) -> bool:
        """Check whether ``key`` holds a live value."""
        return await self._require().exists(key)

    async def keys(self, prefix: str = "") -> list[str]:
        """List live keys starting with ``prefix``."""
        return await self._require().keys(prefix)

    def _require(self) -> StoreBackend:
        if not self._connected or self._backend is None:
            raise ErrStoreNotConnected
        return self._backend


class StoreBackend(Protocol):
    """Protocol for store backend implementations."""

    async def connect(self) -> None: ...
    async def close(self) -> None: ...
    async def get(self, key: str) -> str | None: ...
    async def set(self, key: str, value: str, ttl: int | None = None) -> None: ...
    async def delete(self, key: str) -> None: ...
    async def exists(self, key: str) -> bool: ...
    async def keys(self, prefix: str = "") -> list[str]: ...
