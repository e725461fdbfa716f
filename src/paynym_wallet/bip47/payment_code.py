"""BIP47 payment codes — derivation, decoding and input classification.

A payment code is the Base58Check encoding (version byte ``0x47``) of an
80-byte payload::

    [0]      version (0x01)
    [1]      features bitfield (0x00)
    [2:35]   compressed public key of m/47'/coin'/0'
    [35:67]  chain code of m/47'/coin'/0'
    [67:80]  reserved, zero

The notification key pair is child 0 of the same account node; its P2PKH
address is where notification transactions are sent and whose key the
directory uses to authenticate claims.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from paynym_wallet.bitcoin.address import (
    pubkey_to_address,
    validate_address,
    validate_silent_payment_code,
)
from paynym_wallet.bitcoin.keys import (
    ExtendedKey,
    base58check_decode,
    base58check_encode,
    decompress_public_key,
    derive_public_child,
    is_valid_private_key,
    private_key_to_public_key,
)
from paynym_wallet.errors.definitions import ErrMalformedPaymentCode
from paynym_wallet.errors.paynym_errors import KeyIntegrityError, PaynymError

PAYMENT_CODE_PREFIX = "PM8T"
PAYMENT_CODE_MIN_LENGTH = 50

_VERSION_BYTE = b"\x47"
_PAYLOAD_LEN = 80
_PAYLOAD_VERSION = 0x01
_SUPPORTED_VERSIONS = (0x01, 0x02)

# Samourai convention: bit 0 of the last reserved byte marks segwit support
_SEGWIT_BYTE = 79
_SEGWIT_BIT = 0x01

_WELL_FORMED_RE = re.compile(
    r"^PM8T[123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz]+$"
)


def account_path(*, testnet: bool = False) -> str:
    """BIP47 account derivation path (coin type 1 on testnet)."""
    coin = 1 if testnet else 0
    return f"m/47'/{coin}'/0'"


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PaymentCode:
    """A decoded BIP47 payment code.

    Attributes:
        code: The Base58Check string (``PM8T...``).
        version: Payload version byte.
        features: Features bitfield byte.
        public_key: 33-byte compressed public key.
        chain_code: 32-byte chain code.
        segwit: True when the code advertises segwit support.
    """

    code: str
    version: int
    features: int
    public_key: bytes
    chain_code: bytes
    segwit: bool = False

    def notification_public_key(self) -> bytes:
        """Public key of child 0 (the notification key)."""
        return derive_public_child(self.public_key, self.chain_code, 0)

    def notification_address(self, *, testnet: bool = False) -> str:
        """P2PKH address of the notification key."""
        return pubkey_to_address(self.notification_public_key(), testnet=testnet)


@dataclass(frozen=True, slots=True)
class NotificationKeyPair:
    """The notification key of a wallet's payment code.

    Never persisted: always re-derived from the seed when needed.
    """

    private_key: bytes = field(repr=False)
    public_key: bytes
    address: str

    def __post_init__(self) -> None:
        if not is_valid_private_key(self.private_key):
            msg = "notification private key is not a valid secp256k1 scalar"
            raise KeyIntegrityError(msg)


# ---------------------------------------------------------------------------
# Validation / classification
# ---------------------------------------------------------------------------


def is_well_formed(code: str) -> bool:
    """Structural check only: ``PM8T`` prefix, Base58 alphabet, length >= 50."""
    if not isinstance(code, str):
        return False
    return bool(_WELL_FORMED_RE.match(code)) and len(code) >= PAYMENT_CODE_MIN_LENGTH


def decode_payment_code(code: str) -> PaymentCode:
    """Fully decode and validate a payment code.

    Raises:
        PaynymError: ``ErrMalformedPaymentCode`` for any structural,
            checksum or key-encoding problem.
    """
    if not is_well_formed(code):
        raise ErrMalformedPaymentCode
    try:
        raw = base58check_decode(code)
    except ValueError as exc:
        raise ErrMalformedPaymentCode from exc
    if len(raw) != _PAYLOAD_LEN + 1 or raw[:1] != _VERSION_BYTE:
        raise ErrMalformedPaymentCode

    payload = raw[1:]
    if payload[0] not in _SUPPORTED_VERSIONS:
        raise ErrMalformedPaymentCode
    public_key = payload[2:35]
    try:
        decompress_public_key(public_key)
    except ValueError as exc:
        raise ErrMalformedPaymentCode from exc

    return PaymentCode(
        code=code,
        version=payload[0],
        features=payload[1],
        public_key=public_key,
        chain_code=payload[35:67],
        segwit=bool(payload[_SEGWIT_BYTE] & _SEGWIT_BIT),
    )


def is_valid_payment_code(code: str) -> bool:
    """True when ``code`` decodes as a BIP47 payment code."""
    try:
        decode_payment_code(code)
    except PaynymError:
        return False
    return True


def is_valid_bitcoin_address(value: str) -> bool:
    """True for plain on-chain addresses (no notification needed)."""
    return validate_address(value)


def is_valid_alternate_payment_format(value: str) -> bool:
    """True for BIP352 silent-payment codes (no notification needed)."""
    return validate_silent_payment_code(value)


# ---------------------------------------------------------------------------
# Derivation
# ---------------------------------------------------------------------------


class PaymentCodeIdentity:
    """Derives a wallet's payment code and notification key pair from its seed.

    Both derivations are deterministic: the same seed always yields the same
    code and the same notification key.
    """

    def __init__(self, *, testnet: bool = False) -> None:
        self._testnet = testnet

    @property
    def testnet(self) -> bool:
        """Whether derivation uses the testnet coin type."""
        return self._testnet

    def account_node(self, seed: bytes) -> ExtendedKey:
        """Return the BIP47 account node ``m/47'/coin'/0'``."""
        return ExtendedKey.from_seed(seed).derive_path(account_path(testnet=self._testnet))

    def derive_payment_code(self, seed: bytes) -> str:
        """Derive the ``PM8T...`` payment code for ``seed``."""
        node = self.account_node(seed)
        payload = (
            bytes([_PAYLOAD_VERSION, 0x00])
            + node.public_key()
            + node.chain_code
            + b"\x00" * 13
        )
        return base58check_encode(_VERSION_BYTE + payload)

    def derive_notification_key_pair(self, seed: bytes) -> NotificationKeyPair:
        """Derive the notification key pair (child 0 of the account node).

        Raises:
            KeyIntegrityError: If derivation yields an invalid scalar.
        """
        try:
            child = self.account_node(seed).derive_child(0)
        except ValueError as exc:
            msg = f"notification key derivation failed: {exc}"
            raise KeyIntegrityError(msg) from exc
        if not is_valid_private_key(child.key):
            msg = "notification private key is not a valid secp256k1 scalar"
            raise KeyIntegrityError(msg)
        public_key = private_key_to_public_key(child.key)
        return NotificationKeyPair(
            private_key=child.key,
            public_key=public_key,
            address=pubkey_to_address(public_key, testnet=self._testnet),
        )

    # Classifiers, exposed here for callers that only hold an identity
    is_well_formed = staticmethod(is_well_formed)
    is_valid_payment_code = staticmethod(is_valid_payment_code)
    is_valid_bitcoin_address = staticmethod(is_valid_bitcoin_address)
    is_valid_alternate_payment_format = staticmethod(is_valid_alternate_payment_format)
