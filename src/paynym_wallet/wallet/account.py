"""BIP47 account — the key-holding half of a payment-code wallet.

Holds the wallet seed and the BIP47 on/off switch and derives the payment
code and notification key on demand. Wallet implementations compose this
with their own transaction machinery to satisfy
:class:`~paynym_wallet.wallet.port.PaymentCodeWallet`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from mnemonic import Mnemonic

from paynym_wallet.bip47.payment_code import PaymentCodeIdentity
from paynym_wallet.errors.definitions import ErrFeatureDisabled

if TYPE_CHECKING:
    from paynym_wallet.bip47.payment_code import NotificationKeyPair

logger = logging.getLogger(__name__)


class Bip47Account:
    """Seed-backed payment-code identity with a feature switch.

    The payment code is memoised (it is public and immutable for the life
    of the wallet); the notification key pair is re-derived on every call.
    """

    def __init__(self, seed: bytes, *, testnet: bool = False, enabled: bool = False) -> None:
        """Initialize the account.

        Args:
            seed: BIP32 seed bytes (16-64 bytes).
            testnet: Derive on the testnet coin type.
            enabled: Initial state of the BIP47 feature switch.
        """
        self._seed = seed
        self._identity = PaymentCodeIdentity(testnet=testnet)
        self._enabled = enabled
        self._payment_code: str | None = None

    @classmethod
    def from_mnemonic(
        cls,
        words: str,
        *,
        passphrase: str = "",
        testnet: bool = False,
        enabled: bool = False,
    ) -> Bip47Account:
        """Build an account from a BIP39 mnemonic phrase.

        Raises:
            ValueError: If the mnemonic checksum is invalid.
        """
        m = Mnemonic("english")
        words = " ".join(words.split())
        if not m.check(words):
            msg = "invalid BIP39 mnemonic"
            raise ValueError(msg)
        return cls(m.to_seed(words, passphrase), testnet=testnet, enabled=enabled)

    @property
    def identity(self) -> PaymentCodeIdentity:
        """The derivation helper bound to this account's network."""
        return self._identity

    def is_feature_enabled(self) -> bool:
        """Whether BIP47 / Paynym features are switched on."""
        return self._enabled

    def switch_feature(self, enabled: bool) -> None:
        """Turn BIP47 features on or off."""
        self._enabled = enabled
        logger.debug("BIP47 feature %s", "enabled" if enabled else "disabled")

    def get_payment_code(self) -> str:
        """Return this wallet's payment code."""
        if self._payment_code is None:
            self._payment_code = self._identity.derive_payment_code(self._seed)
        return self._payment_code

    def get_notification_key_pair(self) -> NotificationKeyPair:
        """Derive the notification key pair.

        Raises:
            PaynymError: ``ErrFeatureDisabled`` if BIP47 is switched off.
        """
        if not self._enabled:
            raise ErrFeatureDisabled
        return self._identity.derive_notification_key_pair(self._seed)
