"""PaynymError — base exception class for all paynym-wallet errors."""

from __future__ import annotations


class PaynymError(Exception):
    """Base error for payment-code and directory operations.

    Attributes:
        message: Human-readable error description.
        status_code: Closest matching HTTP status code.
        code: Machine-readable error code string.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 500,
        code: str = "paynym-error",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class KeyIntegrityError(PaynymError):
    """Key derivation produced material that is not a valid secp256k1 key.

    Fatal: the seed or derivation code is broken, retrying cannot help.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=500, code="key-integrity")
