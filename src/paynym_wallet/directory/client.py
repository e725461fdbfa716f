"""Paynym directory client — typed access to the paynym.rs API.

Endpoints (all ``POST``, JSON bodies):
- ``/create``   register a payment code (unauthenticated)
- ``/token``    fetch a fresh auth token (unauthenticated)
- ``/nym``      look up a nym by payment code, nymID or nymName
- ``/claim``    prove ownership of a payment code (``auth-token`` header)
- ``/follow``   follow another nym (``auth-token`` header)
- ``/unfollow`` stop following a nym (``auth-token`` header)

Every call returns a :class:`DirectoryResult`; HTTP failures are reported
through its status and message rather than raised.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import time
from contextlib import nullcontext
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

import httpx

from paynym_wallet.bip47.payment_code import is_well_formed
from paynym_wallet.config.settings import DirectoryConfig
from paynym_wallet.directory.models import (
    TRANSPORT_ERROR_STATUS,
    CreatedNym,
    DirectoryResult,
    ErrorKind,
    NymAccount,
    NymClaim,
    NymFollow,
    NymSummary,
    NymToken,
    NymUnfollow,
)
from paynym_wallet.errors.definitions import ErrDirectoryNotConnected

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from contextlib import AbstractContextManager

    from paynym_wallet.directory.cache import DirectoryCache
    from paynym_wallet.metrics.collector import DirectoryMetrics

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RATE_LIMITED = 429
_UNKNOWN_ERROR = "Unknown error"
_UNAUTHORIZED = "Unauthorized: Invalid token, signature, or unclaimed payment code"
_MALFORMED_CODE = "Invalid payment code format"

# Per-endpoint meaning of each documented status code
_CREATE_MESSAGES = {
    201: "PayNym created successfully",
    200: "PayNym already exists",
    400: "Bad request: Invalid payment code format",
}
_TOKEN_MESSAGES = {
    200: "Token was successfully updated",
    404: "Payment code was not found in database",
    400: "Bad request: Invalid payment code format",
}
_NYM_MESSAGES = {
    200: "Nym found and returned",
    404: "Nym not found",
    400: "Bad request: Invalid nym identifier",
}
_CLAIM_MESSAGES = {
    200: "Payment code successfully claimed",
    400: "Bad request: Missing signature or already claimed",
    401: _UNAUTHORIZED,
}
_FOLLOW_MESSAGES = {
    200: "Added to followers",
    404: "Target nym not found",
    400: "Bad request: Missing fields or cannot follow yourself",
    401: _UNAUTHORIZED,
}
_UNFOLLOW_MESSAGES = {
    200: "Unfollowed successfully",
    404: "Target nym not found",
    400: "Bad request: Not currently following this nym",
    401: _UNAUTHORIZED,
}

# Per-endpoint failure kind of each documented error status
_CREATE_KINDS = {400: ErrorKind.MALFORMED_INPUT}
_TOKEN_KINDS = {404: ErrorKind.NOT_FOUND, 400: ErrorKind.MALFORMED_INPUT}
_NYM_KINDS = {404: ErrorKind.NOT_FOUND, 400: ErrorKind.MALFORMED_INPUT}
_CLAIM_KINDS = {400: ErrorKind.CONFLICT, 401: ErrorKind.UNAUTHORIZED}
_FOLLOW_KINDS = {
    404: ErrorKind.NOT_FOUND,
    400: ErrorKind.CONFLICT,
    401: ErrorKind.UNAUTHORIZED,
}
_UNFOLLOW_KINDS = _FOLLOW_KINDS


def encode_body(body: dict[str, Any]) -> bytes:
    """Serialize a request body as compact UTF-8 JSON."""
    return json.dumps(body, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Rate-limit retry policy.

    Attributes:
        max_attempts: Total attempts including the first (2 = one retry).
        default_wait: Seconds to wait when ``Retry-After`` is absent or unusable.
        max_wait: Upper bound on any single wait.
    """

    max_attempts: int = 2
    default_wait: float = 5.0
    max_wait: float = 60.0

    def should_retry(self, status_code: int, attempt: int) -> bool:
        """True if a response with ``status_code`` on ``attempt`` is retried."""
        return status_code == _RATE_LIMITED and attempt < self.max_attempts

    def wait_seconds(self, retry_after: str | None) -> float:
        """Seconds to wait given a ``Retry-After`` header value.

        Non-numeric, negative or non-finite values fall back to
        ``default_wait``; the result never exceeds ``max_wait``.
        """
        wait = self.default_wait
        if retry_after is not None:
            try:
                parsed = float(retry_after.strip())
            except ValueError:
                # HTTP-date form is not supported
                parsed = None
            if parsed is not None and math.isfinite(parsed) and parsed >= 0:
                wait = parsed
        return min(wait, self.max_wait)


@dataclass(frozen=True, slots=True)
class _RawResponse:
    status_code: int
    data: dict[str, Any]
    error: str = ""


class DirectoryClient:
    """Async client for the Paynym directory.

    Usage::

        client = DirectoryClient(config)
        await client.connect()
        try:
            result = await client.nym("PM8T...")
            if result.ok:
                print(result.value.nym_name)
        finally:
            await client.close()
    """

    def __init__(
        self,
        config: DirectoryConfig | None = None,
        *,
        cache: DirectoryCache | None = None,
        metrics: DirectoryMetrics | None = None,
        retry: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the directory client.

        Args:
            config: Directory settings (base URL, timeout, retry defaults).
            cache: Optional summary cache backing :meth:`get_cached`.
            metrics: Optional Prometheus accounting.
            retry: Rate-limit policy; defaults come from ``config``.
            sleep: Async sleep used between rate-limit attempts.
        """
        self._config = config or DirectoryConfig()
        self._cache = cache
        self._metrics = metrics
        self._retry = retry or RetryPolicy(
            max_attempts=self._config.retry_max_attempts,
            default_wait=self._config.retry_default_wait,
            max_wait=self._config.retry_max_wait,
        )
        self._sleep = sleep
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:  # noqa: ASYNC910
        """Create the underlying HTTP client."""
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self._config.base_url.rstrip("/"),
            timeout=self._config.timeout,
            headers={"User-Agent": self._config.user_agent},
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        """Check if the HTTP client is active."""
        return self._client is not None

    @property
    def cache(self) -> DirectoryCache | None:
        return self._cache

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def create(self, code: str) -> DirectoryResult[CreatedNym]:
        """Register ``code`` with the directory (201 new, 200 existing)."""
        if not is_well_formed(code):
            return self._reject_code("/create", code)
        return await self._call(
            "/create", {"code": code}, _CREATE_MESSAGES, _CREATE_KINDS, CreatedNym.from_dict
        )

    async def token(self, code: str) -> DirectoryResult[NymToken]:
        """Fetch a fresh auth token for ``code``."""
        if not is_well_formed(code):
            return self._reject_code("/token", code)
        return await self._call(
            "/token", {"code": code}, _TOKEN_MESSAGES, _TOKEN_KINDS, NymToken.from_dict
        )

    async def nym(self, nym: str, *, compact: bool = False) -> DirectoryResult[NymAccount]:
        """Look up a nym by payment code, nymID or nymName."""
        body: dict[str, Any] = {"nym": nym}
        if compact:
            body["compact"] = True
        return await self._call("/nym", body, _NYM_MESSAGES, _NYM_KINDS, NymAccount.from_dict)

    async def claim(self, token: str, signature: str) -> DirectoryResult[NymClaim]:
        """Claim the payment code the token was issued for."""
        return await self._call(
            "/claim",
            {"signature": signature},
            _CLAIM_MESSAGES,
            _CLAIM_KINDS,
            NymClaim.from_dict,
            token=token,
        )

    async def follow(self, token: str, signature: str, target: str) -> DirectoryResult[NymFollow]:
        """Follow ``target`` (nymID, nymName or payment code)."""
        return await self._call(
            "/follow",
            {"target": target, "signature": signature},
            _FOLLOW_MESSAGES,
            _FOLLOW_KINDS,
            NymFollow.from_dict,
            token=token,
        )

    async def unfollow(
        self, token: str, signature: str, target: str
    ) -> DirectoryResult[NymUnfollow]:
        """Stop following ``target``."""
        return await self._call(
            "/unfollow",
            {"target": target, "signature": signature},
            _UNFOLLOW_MESSAGES,
            _UNFOLLOW_KINDS,
            NymUnfollow.from_dict,
            token=token,
        )

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    async def get_info(self, code: str) -> NymSummary | None:
        """Fetch a fresh summary of the nym owning ``code``."""
        if not is_well_formed(code):
            return None
        result = await self.nym(code, compact=True)
        if not result.ok or result.value is None:
            return None
        now = self._cache.now() if self._cache is not None else time.time()
        return NymSummary.from_account(code, result.value, cached_at=now)

    async def get_cached(self, code: str, *, force_refresh: bool = False) -> NymSummary | None:
        """Return a fresh cached summary for ``code`` or fetch and cache one.

        Anything that is not a well-formed payment code yields None without
        touching the cache or the network.
        """
        if not is_well_formed(code):
            return None
        if self._cache is not None and not force_refresh:
            cached = await self._cache.get_fresh(code)
            if cached is not None:
                return cached

        summary = await self.get_info(code)
        if summary is not None and self._cache is not None:
            await self._cache.put(summary)
        return summary

    async def get_following(self, code: str) -> list[str]:
        """nymIds followed by the nym owning ``code``; ``[]`` on failure."""
        if not is_well_formed(code):
            return []
        result = await self.nym(code)
        return list(result.value.following) if result.ok and result.value else []

    async def get_followers(self, code: str) -> list[str]:
        """nymIds following the nym owning ``code``; ``[]`` on failure."""
        if not is_well_formed(code):
            return []
        result = await self.nym(code)
        return list(result.value.followers) if result.ok and result.value else []

    async def clear_cache(self) -> int:
        """Drop every cached summary; returns the number removed."""
        if self._cache is None:
            return 0
        return await self._cache.clear_all()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _reject_code(endpoint: str, code: str) -> DirectoryResult[Any]:
        logger.debug("Not sending %s for malformed payment code %r", endpoint, code[:12])
        return DirectoryResult.rejected(ErrorKind.MALFORMED_INPUT, _MALFORMED_CODE)

    async def _call(
        self,
        endpoint: str,
        body: dict[str, Any],
        messages: dict[int, str],
        kinds: dict[int, ErrorKind],
        parse: Callable[[dict[str, Any]], T],
        *,
        token: str | None = None,
    ) -> DirectoryResult[T]:
        headers = {"auth-token": token} if token is not None else {}
        with self._track(endpoint):
            raw = await self._post(endpoint, body, headers)

        if self._metrics is not None:
            self._metrics.record_request(endpoint, raw.status_code)

        if raw.status_code == TRANSPORT_ERROR_STATUS:
            return DirectoryResult(
                value=None,
                status_code=raw.status_code,
                message=raw.error,
                kind=ErrorKind.TRANSPORT,
            )

        status = raw.status_code
        server_message = raw.data.get("message")
        if status in messages:
            message = messages[status]
            if server_message and not 200 <= status < 300:
                message = f"{message} ({server_message})"
        else:
            message = server_message or _UNKNOWN_ERROR

        value = parse(raw.data) if 200 <= status < 300 and status in messages else None
        if value is not None:
            return DirectoryResult(value=value, status_code=status, message=message)

        kind = kinds.get(status) or ErrorKind.from_status(status) or ErrorKind.UNKNOWN
        logger.debug("Directory %s returned %d (%s): %s", endpoint, status, kind, message)
        return DirectoryResult(value=None, status_code=status, message=message, kind=kind)

    async def _post(
        self, endpoint: str, body: dict[str, Any], extra_headers: dict[str, str]
    ) -> _RawResponse:
        """POST ``body`` with the rate-limit policy applied."""
        client = self._ensure_connected()
        content = encode_body(body)
        headers = {
            "Content-Type": "application/json; charset=UTF-8",
            "Content-Length": str(len(content)),
            **extra_headers,
        }

        attempt = 0
        while True:
            attempt += 1
            try:
                response = await client.post(endpoint, content=content, headers=headers)
            except httpx.HTTPError as exc:
                logger.error("Directory request %s failed: %s", endpoint, exc)
                return _RawResponse(TRANSPORT_ERROR_STATUS, {}, str(exc) or type(exc).__name__)

            if not self._retry.should_retry(response.status_code, attempt):
                break

            wait = self._retry.wait_seconds(response.headers.get("Retry-After"))
            logger.warning("Rate limited on %s, retrying in %.1fs", endpoint, wait)
            if self._metrics is not None:
                self._metrics.record_retry(endpoint)
            await self._sleep(wait)

        return _RawResponse(response.status_code, _json_object(response))

    def _track(self, endpoint: str) -> AbstractContextManager[None]:
        if self._metrics is None:
            return nullcontext()
        return self._metrics.track_request(endpoint)

    def _ensure_connected(self) -> httpx.AsyncClient:
        """Return the HTTP client, raising if not connected."""
        if self._client is None:
            raise ErrDirectoryNotConnected
        return self._client


def _json_object(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}