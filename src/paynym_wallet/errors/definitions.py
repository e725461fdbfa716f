"""Error definitions for payment codes, signing, contacts and storage."""

from __future__ import annotations

from paynym_wallet.errors.paynym_errors import PaynymError

# -- Wallet / feature ------------------------------------------------------

ErrFeatureDisabled = PaynymError(
    "BIP47 is not enabled for this wallet", status_code=403, code="feature-disabled"
)
ErrNoPaymentCode = PaynymError(
    "no payment code available for this wallet", status_code=400, code="no-payment-code"
)

# -- Validation ------------------------------------------------------------

ErrMalformedPaymentCode = PaynymError(
    "malformed payment code", status_code=400, code="malformed-payment-code"
)
ErrEmptyToken = PaynymError(
    "directory token must not be empty", status_code=400, code="empty-token"
)

# -- Claim flow ------------------------------------------------------------

ErrClaimInProgress = PaynymError(
    "a claim is already in progress for this payment code",
    status_code=409,
    code="claim-in-progress",
)

# -- Storage ---------------------------------------------------------------

ErrStoreNotConnected = PaynymError(
    "key-value store not connected, call connect() first",
    status_code=500,
    code="store-not-connected",
)

# -- Directory -------------------------------------------------------------

ErrDirectoryNotConnected = PaynymError(
    "directory client not connected, call connect() first",
    status_code=500,
    code="directory-not-connected",
)
