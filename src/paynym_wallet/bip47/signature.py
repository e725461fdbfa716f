"""Claim signatures — proving ownership of a payment code to the directory.

The directory hands out a short-lived token; the wallet proves it controls
the payment code by signing that token with the *notification* private key
using the Bitcoin message-signing scheme:

1. digest = SHA256d(magic prefix || varint(len) || token)
2. recoverable ECDSA over the digest (RFC6979 nonce, low-S)
3. 65 bytes: header (27 + recid + 4) || r || s, Base64 encoded

The directory verifies the signature against the notification address, so
signing with any other key is rejected server-side.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import TYPE_CHECKING

from paynym_wallet.bitcoin.address import pubkey_to_address
from paynym_wallet.bitcoin.keys import recover_public_key, sign_recoverable
from paynym_wallet.errors.definitions import ErrEmptyToken, ErrFeatureDisabled
from paynym_wallet.utils.crypto import message_digest

if TYPE_CHECKING:
    from paynym_wallet.bip47.payment_code import NotificationKeyPair
    from paynym_wallet.wallet.port import PaymentCodeWallet

logger = logging.getLogger(__name__)

SIGNATURE_LENGTH = 65
_HEADER_BASE = 27
_COMPRESSED_FLAG = 4


def sign_message(message: str, private_key: bytes) -> bytes:
    """Produce a 65-byte compact recoverable signature over ``message``."""
    recid, r, s = sign_recoverable(private_key, message_digest(message))
    header = _HEADER_BASE + recid + _COMPRESSED_FLAG
    return bytes([header]) + r.to_bytes(32, "big") + s.to_bytes(32, "big")


def recover_message_signer(message: str, signature: bytes) -> bytes:
    """Recover the compressed public key that signed ``message``.

    Raises:
        ValueError: If the signature is malformed.
    """
    if len(signature) != SIGNATURE_LENGTH:
        msg = f"Invalid signature length: {len(signature)}"
        raise ValueError(msg)
    header = signature[0]
    if not _HEADER_BASE <= header < _HEADER_BASE + 8:
        msg = f"Invalid signature header byte: {header}"
        raise ValueError(msg)
    recid = (header - _HEADER_BASE) & 3
    r = int.from_bytes(signature[1:33], "big")
    s = int.from_bytes(signature[33:65], "big")
    return recover_public_key(message_digest(message), r, s, recid)


def verify_message(message: str, signature_b64: str, address: str, *, testnet: bool = False) -> bool:
    """Check a Base64 message signature against a P2PKH address."""
    try:
        signature = base64.b64decode(signature_b64, validate=True)
        pubkey = recover_message_signer(message, signature)
    except (ValueError, binascii.Error):
        return False
    return pubkey_to_address(pubkey, testnet=testnet) == address


class ClaimSignatureEngine:
    """Signs directory tokens with a wallet's notification key.

    Usage::

        engine = ClaimSignatureEngine(wallet)
        signature = engine.sign(token, wallet.get_notification_key_pair())
    """

    def __init__(self, wallet: PaymentCodeWallet) -> None:
        self._wallet = wallet

    def sign(self, token: str, key_pair: NotificationKeyPair) -> str:
        """Sign ``token`` and return the Base64 signature.

        Pure function of ``(token, key_pair)``: identical inputs always yield
        an identical signature.

        Raises:
            PaynymError: ``ErrFeatureDisabled`` when BIP47 is off for the
                wallet, ``ErrEmptyToken`` for an empty token.
        """
        if not self._wallet.is_feature_enabled():
            raise ErrFeatureDisabled
        if not token:
            raise ErrEmptyToken
        signature = base64.b64encode(sign_message(token, key_pair.private_key)).decode("ascii")
        logger.debug("Signed directory token %s... for %s", token[:8], key_pair.address)
        return signature

    def sign_with_wallet(self, token: str) -> str:
        """Sign ``token`` with the wallet's freshly derived notification key."""
        if not self._wallet.is_feature_enabled():
            raise ErrFeatureDisabled
        return self.sign(token, self._wallet.get_notification_key_pair())
