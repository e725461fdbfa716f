"""In-memory LRU store with TTL support."""

from __future__ import annotations

import time
from collections import OrderedDict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from paynym_wallet.config.settings import CacheConfig


class MemoryStore:
    """Process-local LRU store for development, tests and single-user wallets."""

    def __init__(
        self,
        config: CacheConfig | None = None,
        max_size: int = 10000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory store.

        Args:
            config: Cache configuration (unused for memory backend).
            max_size: Maximum number of keys to hold before evicting LRU.
            clock: Wall-clock source in seconds, swappable in tests.
        """
        self._config = config
        self._max_size = max_size
        self._clock = clock
        # {key: (value, expiry_timestamp_or_none)}
        self._data: OrderedDict[str, tuple[str, float | None]] = OrderedDict()

    async def connect(self) -> None:  # noqa: ASYNC910
        """Connect (no-op for in-memory)."""

    async def close(self) -> None:  # noqa: ASYNC910
        """Close and clear the store."""
        self._data.clear()

    def _live(self, key: str) -> tuple[str, float | None] | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        expiry = entry[1]
        if expiry is not None and self._clock() > expiry:
            del self._data[key]
            return None
        return entry

    async def get(self, key: str) -> str | None:  # noqa: ASYNC910
        """Get a value, or None if missing or expired."""
        entry = self._live(key)
        if entry is None:
            return None
        self._data.move_to_end(key)
        return entry[0]

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:  # noqa: ASYNC910
        """Set a value with an optional TTL in seconds."""
        expiry = None if ttl is None else self._clock() + ttl
        self._data.pop(key, None)
        self._data[key] = (value, expiry)
        if len(self._data) > self._max_size:
            self._data.popitem(last=False)

    async def delete(self, key: str) -> None:  # noqa: ASYNC910
        """Delete a key."""
        self._data.pop(key, None)

    async def exists(self, key: str) -> bool:  # noqa: ASYNC910
        """Check if a key exists and is not expired."""
        return self._live(key) is not None

    async def keys(self, prefix: str = "") -> list[str]:  # noqa: ASYNC910
        """List live keys with the given prefix."""
        return [k for k in list(self._data) if k.startswith(prefix) and self._live(k) is not None]
