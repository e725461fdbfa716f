"""Paynym directory data models.

Dataclasses for the directory's request/response shapes:
- DirectoryResult — value-or-failure wrapper returned by every endpoint
- CreatedNym — ``/create``
- NymToken — ``/token``
- NymAccount / NymCode — ``/nym``
- NymClaim — ``/claim``
- NymFollow / NymUnfollow — ``/follow`` and ``/unfollow``
- NymSummary — cached digest of a NymAccount
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from paynym_wallet.errors.paynym_errors import PaynymError

T = TypeVar("T")

# Status used when no HTTP response was received at all
TRANSPORT_ERROR_STATUS = -1
# Status used when the request was refused locally and never sent
NOT_SENT_STATUS = 0


class ErrorKind(enum.StrEnum):
    """Failure taxonomy for directory and payment-code operations."""

    MALFORMED_INPUT = "malformed-input"
    NOT_FOUND = "not-found"
    UNAUTHORIZED = "unauthorized"
    CONFLICT = "conflict"
    RATE_LIMITED = "rate-limited"
    TRANSPORT = "transport"
    FEATURE_DISABLED = "feature-disabled"
    UNKNOWN = "unknown"

    @classmethod
    def from_status(cls, status_code: int) -> ErrorKind | None:
        """Map an HTTP status to an error kind; None for success.

        Endpoint-specific meanings take precedence, see
        :class:`~paynym_wallet.directory.client.DirectoryClient`.
        """
        if 200 <= status_code < 300:
            return None
        return _STATUS_KINDS.get(status_code, cls.UNKNOWN)

    @classmethod
    def from_error(cls, error: PaynymError) -> ErrorKind:
        """Classify a raised :class:`PaynymError` by its error code."""
        return _ERROR_CODE_KINDS.get(error.code, cls.UNKNOWN)


_STATUS_KINDS = {
    TRANSPORT_ERROR_STATUS: ErrorKind.TRANSPORT,
    400: ErrorKind.CONFLICT,
    401: ErrorKind.UNAUTHORIZED,
    404: ErrorKind.NOT_FOUND,
    429: ErrorKind.RATE_LIMITED,
}

_ERROR_CODE_KINDS = {
    "feature-disabled": ErrorKind.FEATURE_DISABLED,
    "no-payment-code": ErrorKind.FEATURE_DISABLED,
    "malformed-payment-code": ErrorKind.MALFORMED_INPUT,
    "empty-token": ErrorKind.MALFORMED_INPUT,
    "claim-in-progress": ErrorKind.CONFLICT,
}


@dataclass(frozen=True, slots=True)
class DirectoryResult(Generic[T]):
    """Outcome of one directory call.

    Attributes:
        value: Parsed payload on success, None otherwise.
        status_code: HTTP status, ``TRANSPORT_ERROR_STATUS`` or
            ``NOT_SENT_STATUS``.
        message: Human-readable meaning of ``status_code`` for the endpoint.
        kind: Endpoint-specific failure kind; derived from the status when
            not given.
    """

    value: T | None
    status_code: int
    message: str
    kind: ErrorKind | None = None

    @classmethod
    def rejected(cls, kind: ErrorKind, message: str) -> DirectoryResult[T]:
        """A failure decided locally, without a request."""
        return cls(value=None, status_code=NOT_SENT_STATUS, message=message, kind=kind)

    @property
    def ok(self) -> bool:
        """True when the call succeeded and produced a value."""
        return self.value is not None and 200 <= self.status_code < 300

    @property
    def error_kind(self) -> ErrorKind | None:
        """Failure category, or None on success."""
        if self.ok:
            return None
        if self.kind is not None:
            return self.kind
        return ErrorKind.from_status(self.status_code) or ErrorKind.UNKNOWN


# ---------------------------------------------------------------------------
# Endpoint payloads
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CreatedNym:
    """Response of ``POST /create``."""

    claimed: bool
    nym_id: str
    nym_name: str
    segwit: bool
    token: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CreatedNym:
        return cls(
            claimed=bool(data.get("claimed", False)),
            nym_id=data.get("nymID", ""),
            nym_name=data.get("nymName", ""),
            segwit=bool(data.get("segwit", False)),
            token=data.get("token", ""),
        )


@dataclass(frozen=True, slots=True)
class NymToken:
    """Response of ``POST /token``."""

    token: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NymToken:
        return cls(token=data.get("token", ""))


@dataclass(frozen=True, slots=True)
class NymCode:
    """A payment code linked to a nym."""

    code: str
    claimed: bool = False
    segwit: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NymCode:
        return cls(
            code=data.get("code", ""),
            claimed=bool(data.get("claimed", False)),
            segwit=bool(data.get("segwit", False)),
        )


@dataclass(slots=True)
class NymAccount:
    """Response of ``POST /nym``.

    Attributes:
        nym_id: Directory identifier of the nym.
        nym_name: Human-friendly name (``+name``).
        codes: Linked payment codes in directory order.
        followers: nymIds following this nym.
        following: nymIds this nym follows.
    """

    nym_id: str
    nym_name: str
    codes: list[NymCode] = field(default_factory=list)
    followers: list[str] = field(default_factory=list)
    following: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NymAccount:
        return cls(
            nym_id=data.get("nymID", ""),
            nym_name=data.get("nymName", ""),
            codes=[NymCode.from_dict(c) for c in data.get("codes") or []],
            followers=[f.get("nymId", "") for f in data.get("followers") or []],
            following=[f.get("nymId", "") for f in data.get("following") or []],
        )

    @property
    def claimed(self) -> bool:
        """True when the first linked code is claimed."""
        return bool(self.codes) and self.codes[0].claimed

    def preferred_code(self) -> NymCode | None:
        """First claimed code, else the first code in directory order."""
        for code in self.codes:
            if code.claimed:
                return code
        return self.codes[0] if self.codes else None


@dataclass(frozen=True, slots=True)
class NymClaim:
    """Response of ``POST /claim``."""

    claimed: str
    token: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NymClaim:
        return cls(claimed=str(data.get("claimed", "")), token=data.get("token", ""))


@dataclass(frozen=True, slots=True)
class NymFollow:
    """Response of ``POST /follow``."""

    follower: str
    following: str
    token: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NymFollow:
        return cls(
            follower=data.get("follower", ""),
            following=data.get("following", ""),
            token=data.get("token", ""),
        )


@dataclass(frozen=True, slots=True)
class NymUnfollow:
    """Response of ``POST /unfollow``."""

    follower: str
    unfollowing: str
    token: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NymUnfollow:
        return cls(
            follower=data.get("follower", ""),
            unfollowing=data.get("unfollowing", ""),
            token=data.get("token", ""),
        )


@dataclass(frozen=True, slots=True)
class NymSummary:
    """Cached digest of a nym, keyed by payment code.

    Attributes:
        code: Payment code the summary was fetched for.
        nym_id: Directory identifier.
        nym_name: Human-friendly name.
        claimed: Whether the nym's primary code is claimed.
        followers: Follower count.
        following: Following count.
        cached_at: Capture time, seconds since the epoch.
    """

    code: str
    nym_id: str = ""
    nym_name: str = ""
    claimed: bool = False
    followers: int = 0
    following: int = 0
    cached_at: float = 0.0

    @classmethod
    def from_account(cls, code: str, account: NymAccount, *, cached_at: float) -> NymSummary:
        """Summarise a full account record."""
        return cls(
            code=code,
            nym_id=account.nym_id,
            nym_name=account.nym_name,
            claimed=account.claimed,
            followers=len(account.followers),
            following=len(account.following),
            cached_at=cached_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "nymID": self.nym_id,
            "nymName": self.nym_name,
            "claimed": self.claimed,
            "followers": self.followers,
            "following": self.following,
            "cached_at": self.cached_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NymSummary:
        return cls(
            code=data.get("code", ""),
            nym_id=data.get("nymID", ""),
            nym_name=data.get("nymName", ""),
            claimed=bool(data.get("claimed", False)),
            followers=int(data.get("followers", 0)),
            following=int(data.get("following", 0)),
            cached_at=float(data.get("cached_at", 0.0)),
        )
