"""Time-boxed local cache of directory lookups.

Summaries live in the shared key-value store under a dedicated key prefix so
that clearing the cache never touches unrelated stored data.
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING

from redis.exceptions import RedisError

from paynym_wallet.directory.models import NymSummary
from paynym_wallet.errors.paynym_errors import PaynymError

if TYPE_CHECKING:
    from collections.abc import Callable

    from paynym_wallet.cache.client import StoreBackend
    from paynym_wallet.config.settings import DirectoryConfig
    from paynym_wallet.metrics.collector import DirectoryMetrics

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60
DEFAULT_PREFIX = "paynym_dir_"

# Store failures degrade to a cache miss
_STORE_ERRORS = (PaynymError, RedisError, OSError, ValueError)


class DirectoryCache:
    """Payment-code keyed cache of :class:`NymSummary` entries."""

    def __init__(
        self,
        store: StoreBackend,
        *,
        ttl: float = DEFAULT_TTL_SECONDS,
        prefix: str = DEFAULT_PREFIX,
        clock: Callable[[], float] = time.time,
        metrics: DirectoryMetrics | None = None,
    ) -> None:
        """Initialize the cache.

        Args:
            store: Key-value store holding the entries.
            ttl: Freshness window in seconds.
            prefix: Key namespace for cache entries.
            clock: Wall-clock source in seconds, swappable in tests.
            metrics: Optional hit/miss accounting.
        """
        self._store = store
        self._ttl = ttl
        self._prefix = prefix
        self._clock = clock
        self._metrics = metrics

    @classmethod
    def from_config(
        cls,
        store: StoreBackend,
        config: DirectoryConfig,
        *,
        metrics: DirectoryMetrics | None = None,
    ) -> DirectoryCache:
        """Build a cache with the TTL and key prefix from ``config``."""
        return cls(store, ttl=config.cache_ttl_seconds, prefix=config.cache_prefix, metrics=metrics)

    @property
    def ttl(self) -> float:
        return self._ttl

    def now(self) -> float:
        """Current time according to the cache clock."""
        return self._clock()

    def key_for(self, code: str) -> str:
        return f"{self._prefix}{code}"

    def is_fresh(self, summary: NymSummary) -> bool:
        """True while ``summary`` is younger than the TTL."""
        return self._clock() - summary.cached_at < self._ttl

    async def get(self, code: str) -> NymSummary | None:
        """Return the stored summary for ``code`` regardless of age."""
        try:
            raw = await self._store.get(self.key_for(code))
            return None if raw is None else NymSummary.from_dict(json.loads(raw))
        except _STORE_ERRORS as exc:
            logger.warning("Directory cache read failed for %s: %s", code[:12], exc)
            self._record("error")
            return None

    async def get_fresh(self, code: str) -> NymSummary | None:
        """Return the summary for ``code`` only if it is still fresh."""
        summary = await self.get(code)
        if summary is None:
            self._record("miss")
            return None
        if not self.is_fresh(summary):
            self._record("stale")
            return None
        self._record("hit")
        return summary

    async def put(self, summary: NymSummary) -> None:
        """Store ``summary`` under its payment code."""
        try:
            await self._store.set(
                self.key_for(summary.code),
                json.dumps(summary.to_dict()),
                ttl=int(self._ttl) or None,
            )
        except _STORE_ERRORS as exc:
            logger.warning("Directory cache write failed for %s: %s", summary.code[:12], exc)
            self._record("error")

    async def clear_all(self) -> int:
        """Remove every entry under the cache prefix; returns the count removed."""
        try:
            keys = await self._store.keys(self._prefix)
            for key in keys:
                await self._store.delete(key)
        except _STORE_ERRORS as exc:
            logger.warning("Directory cache clear failed: %s", exc)
            return 0
        logger.debug("Cleared %d directory cache entries", len(keys))
        return len(keys)

    def _record(self, result: str) -> None:
        if self._metrics is not None:
            self._metrics.record_cache(result)
