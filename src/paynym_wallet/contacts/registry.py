"""Contact registry — the wallet's BIP47 sender and receiver lists.

The *sender list* holds codes this wallet pays (contacts we notified or
that we follow in the directory); the *receiver list* holds codes that
notified us. A code may sit in both lists. Wallet-local metadata (label,
hidden flag, segwit flag) is kept per code alongside the lists.
"""

from __future__ import annotations

import enum
import inspect
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from redis.exceptions import RedisError

from paynym_wallet.bip47.payment_code import (
    decode_payment_code,
    is_valid_alternate_payment_format,
    is_valid_bitcoin_address,
    is_valid_payment_code,
)
from paynym_wallet.errors.definitions import ErrStoreNotConnected
from paynym_wallet.errors.paynym_errors import PaynymError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from paynym_wallet.cache.client import StoreBackend
    from paynym_wallet.directory.client import DirectoryClient
    from paynym_wallet.directory.models import NymSummary
    from paynym_wallet.wallet.port import NotificationTransaction, PaymentCodeWallet

    Approver = Callable[[NotificationTransaction], "bool | Awaitable[bool]"]
    FollowHook = Callable[[str], Awaitable[Any]]

logger = logging.getLogger(__name__)

_STORE_KEY_PREFIX = "paynym_contacts_"
_STORE_ERRORS = (PaynymError, RedisError, OSError)


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ContactEntry:
    """Wallet-local metadata for one contact.

    Attributes:
        code: Payment code, silent-payment code or plain address.
        label: User-assigned name, if any.
        hidden: Hidden contacts stay in the lists but are not shown.
        segwit: The payment code advertises segwit support.
    """

    code: str
    label: str | None = None
    hidden: bool = False
    segwit: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "hidden": self.hidden, "segwit": self.segwit}

    @classmethod
    def from_dict(cls, code: str, data: dict[str, Any]) -> ContactEntry:
        return cls(
            code=code,
            label=data.get("label"),
            hidden=bool(data.get("hidden", False)),
            segwit=bool(data.get("segwit", False)),
        )


class AddContactStatus(enum.StrEnum):
    """Outcome of :meth:`ContactRegistry.add_contact`."""

    UNHIDDEN = "unhidden"
    ADDED = "added"
    NOTIFICATION_SENT = "notification-sent"
    NOTIFICATION_PENDING = "notification-pending"
    NOTIFICATION_FAILED = "notification-failed"
    DECLINED = "declined"
    INVALID = "invalid"


@dataclass(frozen=True, slots=True)
class AddContactResult:
    """Result of adding a contact.

    Attributes:
        status: What happened.
        code: The (stripped) input.
        transaction: Notification transaction involved, if any.
        message: Failure detail for ``NOTIFICATION_FAILED``.
    """

    status: AddContactStatus
    code: str
    transaction: NotificationTransaction | None = None
    message: str = ""

    @property
    def registered(self) -> bool:
        """True when the contact is now visible in the registry."""
        return self.status in (
            AddContactStatus.UNHIDDEN,
            AddContactStatus.ADDED,
            AddContactStatus.NOTIFICATION_SENT,
        )


@dataclass(frozen=True, slots=True)
class ConnectedContact:
    """A contact together with its directory summary.

    Attributes:
        code: The contact's code.
        summary: Cached directory summary; None when unknown or unreachable.
        display: Name to show (label, claimed nym name or the code).
        hidden: Mirrors the contact's hidden flag.
    """

    code: str
    summary: NymSummary | None
    display: str
    hidden: bool = False


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class ContactRegistry:
    """Sender/receiver payment-code lists with their metadata.

    Usage::

        registry = ContactRegistry(wallet, directory=client, store=store)
        await registry.load()
        result = await registry.add_contact("PM8T...")
        added = await registry.reconcile_from_directory()
    """

    def __init__(
        self,
        wallet: PaymentCodeWallet,
        *,
        directory: DirectoryClient | None = None,
        store: StoreBackend | None = None,
        wallet_id: str = "default",
        auto_follow: FollowHook | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            wallet: Wallet owning the lists.
            directory: Directory client used by reconciliation.
            store: Key-value store for persistence.
            wallet_id: Distinguishes several wallets sharing one store.
            auto_follow: Called with each newly registered contact;
                failures are logged and ignored.
        """
        self._wallet = wallet
        self._directory = directory
        self._store = store
        self._store_key = f"{_STORE_KEY_PREFIX}{wallet_id}"
        self._auto_follow = auto_follow
        self._senders: list[str] = []
        self._receivers: list[str] = []
        self._entries: dict[str, ContactEntry] = {}

    # -- List membership --

    @property
    def sender_codes(self) -> list[str]:
        """Codes this wallet pays, in insertion order."""
        return list(self._senders)

    @property
    def receiver_codes(self) -> list[str]:
        """Codes that notified this wallet, in insertion order."""
        return list(self._receivers)

    def add_to_sender_list(self, code: str) -> bool:
        """Add ``code`` to the sender list; returns False if already present."""
        return self._add(self._senders, code)

    def add_to_receiver_list(self, code: str) -> bool:
        """Add ``code`` to the receiver list; returns False if already present."""
        return self._add(self._receivers, code)

    def _add(self, target: list[str], code: str) -> bool:
        self._entry(code)
        if code in target:
            return False
        target.append(code)
        return True

    def all_codes(self) -> list[str]:
        """Union of both lists, sender codes first, without duplicates."""
        return list(dict.fromkeys(self._senders + self._receivers))

    def visible_codes(self) -> list[str]:
        return [c for c in self.all_codes() if not self.get(c).hidden]

    # -- Metadata --

    def get(self, code: str) -> ContactEntry:
        """Metadata for ``code`` (a blank entry if never seen)."""
        return self._entries.get(code) or ContactEntry(code=code)

    def _entry(self, code: str) -> ContactEntry:
        entry = self._entries.get(code)
        if entry is None:
            entry = ContactEntry(code=code, segwit=_is_segwit_code(code))
            self._entries[code] = entry
        return entry

    def set_label(self, code: str, label: str | None) -> None:
        self._entry(code).label = label or None

    def hide(self, code: str) -> None:
        self._entry(code).hidden = True

    def unhide(self, code: str) -> None:
        self._entry(code).hidden = False

    def display_name(self, code: str, summary: NymSummary | None = None) -> str:
        """Label, else the claimed nym name, else the code itself."""
        entry = self._entries.get(code)
        if entry is not None and entry.label:
            return entry.label
        if summary is not None and summary.claimed and summary.nym_name:
            return summary.nym_name
        return code

    # -- Persistence --

    async def save(self) -> None:
        """Persist lists and metadata as JSON.

        Raises:
            PaynymError: ``ErrStoreNotConnected`` if no store was given.
        """
        if self._store is None:
            raise ErrStoreNotConnected
        payload = {
            "senders": self._senders,
            "receivers": self._receivers,
            "metadata": {code: e.to_dict() for code, e in self._entries.items()},
        }
        await self._store.set(self._store_key, json.dumps(payload))

    async def load(self) -> bool:
        """Restore persisted state; returns False if nothing was stored."""
        if self._store is None:
            raise ErrStoreNotConnected
        raw = await self._store.get(self._store_key)
        if raw is None:
            return False
        data = json.loads(raw)
        self._senders = list(dict.fromkeys(data.get("senders", [])))
        self._receivers = list(dict.fromkeys(data.get("receivers", [])))
        self._entries = {
            code: ContactEntry.from_dict(code, meta)
            for code, meta in data.get("metadata", {}).items()
        }
        return True

    async def _persist(self) -> None:
        if self._store is not None:
            await self.save()

    # -- Contact-add decision tree --

    async def add_contact(self, raw: str, approve: Approver | None = None) -> AddContactResult:
        """Add a contact from user input.

        Plain addresses and silent-payment codes are registered directly.
        BIP47 payment codes need a confirmed notification transaction; one
        is built and broadcast when missing, and ``approve`` (when given)
        is asked before broadcasting.
        """
        code = raw.strip()

        existing = self._entries.get(code)
        if existing is not None and existing.hidden:
            existing.hidden = False
            await self._persist()
            logger.debug("Unhid contact %s", code[:12])
            return AddContactResult(AddContactStatus.UNHIDDEN, code)

        if is_valid_bitcoin_address(code) or is_valid_alternate_payment_format(code):
            return await self._register(code)

        if not is_valid_payment_code(code):
            return AddContactResult(AddContactStatus.INVALID, code)

        tx = self._wallet.get_notification_transaction(code)
        if tx is not None and tx.is_confirmed:
            self.add_to_sender_list(code)
            await self._wallet.sync_receiver_addresses(code)
            return await self._register(code, tx)
        if tx is not None:
            logger.debug("Notification to %s still unconfirmed (%s)", code[:12], tx.txid)
            return AddContactResult(AddContactStatus.NOTIFICATION_PENDING, code, tx)

        return await self._notify_and_register(code, approve)

    async def _notify_and_register(self, code: str, approve: Approver | None) -> AddContactResult:
        tx = await self._wallet.create_notification_transaction(code)
        if tx is None:
            logger.error("Could not build notification transaction for %s", code[:12])
            return AddContactResult(
                AddContactStatus.NOTIFICATION_FAILED,
                code,
                message="failed to create notification transaction",
            )

        if approve is not None:
            decision = approve(tx)
            if inspect.isawaitable(decision):
                decision = await decision
            if not decision:
                return AddContactResult(AddContactStatus.DECLINED, code, tx)

        try:
            await self._wallet.broadcast_transaction(tx)
        except Exception as exc:
            logger.error("Notification broadcast for %s failed: %s", code[:12], exc)
            return AddContactResult(AddContactStatus.NOTIFICATION_FAILED, code, tx, str(exc))

        logger.info("Sent notification transaction %s to %s", tx.txid, code[:12])
        await self._register(code, tx)
        return AddContactResult(AddContactStatus.NOTIFICATION_SENT, code, tx)

    async def _register(
        self, code: str, tx: NotificationTransaction | None = None
    ) -> AddContactResult:
        self.add_to_sender_list(code)
        if self.get(code).segwit:
            logger.warning("Contact %s advertises segwit; using legacy derivation", code[:12])
        await self._persist()
        await self._follow(code)
        return AddContactResult(AddContactStatus.ADDED, code, tx)

    async def _follow(self, code: str) -> None:
        if self._auto_follow is None:
            return
        try:
            await self._auto_follow(code)
        except PaynymError as exc:
            logger.warning("Auto-follow of %s skipped: %s", code[:12], exc)

    # -- Directory reconciliation --

    async def reconcile_from_directory(self) -> list[str]:
        """Add one code per nym the wallet follows to the sender list.

        Returns:
            The codes newly added. Empty when BIP47 is off, no directory is
            configured, the wallet has no nym or it follows nobody.
        """
        if not self._wallet.is_feature_enabled() or self._directory is None:
            return []

        mine = await self._directory.nym(self._wallet.get_payment_code())
        if not mine.ok or mine.value is None or not mine.value.following:
            return []

        added: list[str] = []
        for nym_id in mine.value.following:
            result = await self._directory.nym(nym_id)
            if not result.ok or result.value is None:
                logger.warning("Followed nym %s not resolved: %s", nym_id, result.message)
                continue
            preferred = result.value.preferred_code()
            if preferred is None:
                continue
            if self.add_to_sender_list(preferred.code):
                added.append(preferred.code)

        if added:
            logger.info("Restored %d contacts from directory follows", len(added))
            try:
                await self._persist()
            except _STORE_ERRORS as exc:
                logger.warning("Restored contacts not persisted: %s", exc)
        return added

    # -- Connected paynyms --

    def is_connected_to_paynym(self, code: str) -> bool:
        """True once a notification transaction to ``code`` exists."""
        return self._wallet.get_notification_transaction(code) is not None

    async def get_connected_paynyms(
        self, *, force_refresh: bool = False
    ) -> list[ConnectedContact]:
        """Every registered code with its directory summary and display name.

        Summaries come from the directory cache. A code whose lookup fails
        is still returned, with ``summary`` set to None. Empty when BIP47
        is off.
        """
        if not self._wallet.is_feature_enabled():
            return []

        contacts: list[ConnectedContact] = []
        for code in self.all_codes():
            summary = await self._summary(code, force_refresh)
            contacts.append(
                ConnectedContact(
                    code=code,
                    summary=summary,
                    display=self.display_name(code, summary),
                    hidden=self.get(code).hidden,
                )
            )
        return contacts

    async def search_paynyms(self, query: str) -> list[ConnectedContact]:
        """Connected contacts whose code or nym name contains ``query``.

        Matching ignores case; a blank query returns every contact.
        """
        needle = query.strip().lower()
        contacts = await self.get_connected_paynyms()
        if not needle:
            return contacts
        return [
            c
            for c in contacts
            if needle in c.code.lower()
            or (c.summary is not None and needle in c.summary.nym_name.lower())
        ]

    async def _summary(self, code: str, force_refresh: bool) -> NymSummary | None:
        if self._directory is None:
            return None
        try:
            return await self._directory.get_cached(code, force_refresh=force_refresh)
        except PaynymError as exc:
            logger.warning("Directory summary for %s unavailable: %s", code[:12], exc)
            return None


def _is_segwit_code(code: str) -> bool:
    try:
        return decode_payment_code(code).segwit
    except PaynymError:
        return False
