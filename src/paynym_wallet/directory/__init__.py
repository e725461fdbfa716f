"""Paynym directory — client, models and local cache."""

from __future__ import annotations

from paynym_wallet.directory.cache import DirectoryCache
from paynym_wallet.directory.client import DirectoryClient, RetryPolicy
from paynym_wallet.directory.models import (
    NOT_SENT_STATUS,
    TRANSPORT_ERROR_STATUS,
    CreatedNym,
    DirectoryResult,
    ErrorKind,
    NymAccount,
    NymClaim,
    NymCode,
    NymFollow,
    NymSummary,
    NymToken,
    NymUnfollow,
)

__all__ = [
    "NOT_SENT_STATUS",
    "TRANSPORT_ERROR_STATUS",
    "CreatedNym",
    "DirectoryCache",
    "DirectoryClient",
    "DirectoryResult",
    "ErrorKind",
    "NymAccount",
    "NymClaim",
    "NymCode",
    "NymFollow",
    "NymSummary",
    "NymToken",
    "NymUnfollow",
    "RetryPolicy",
]
