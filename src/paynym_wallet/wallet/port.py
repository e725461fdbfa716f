"""Wallet surface consumed by the payment-code components.

General wallet operations (UTXO selection, fees, broadcast) live outside
this package; contact handling reaches them only through this protocol.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from paynym_wallet.bip47.payment_code import NotificationKeyPair


@dataclass(frozen=True, slots=True)
class NotificationTransaction:
    """An on-chain BIP47 notification transaction.

    Attributes:
        txid: Transaction ID hex.
        confirmations: Number of confirmations (0 = in mempool).
        raw_hex: Serialized transaction, when the wallet built it locally.
        fee: Fee in satoshis, when known.
    """

    txid: str
    confirmations: int = 0
    raw_hex: str = ""
    fee: int = 0

    @property
    def is_confirmed(self) -> bool:
        """True once the transaction has at least one confirmation."""
        return self.confirmations > 0


class PaymentCodeWallet(Protocol):
    """Protocol for the wallet that owns a payment code."""

    def get_payment_code(self) -> str: ...
    def is_feature_enabled(self) -> bool: ...
    def get_notification_key_pair(self) -> NotificationKeyPair: ...
    def get_notification_transaction(self, code: str) -> NotificationTransaction | None: ...
    async def sync_receiver_addresses(self, code: str) -> None: ...
    async def create_notification_transaction(self, code: str) -> NotificationTransaction | None: ...
    async def broadcast_transaction(self, tx: NotificationTransaction) -> None: ...
