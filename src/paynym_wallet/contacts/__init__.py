"""Contact lists and the contact-add flow."""

from __future__ import annotations

from paynym_wallet.contacts.registry import (
    AddContactResult,
    AddContactStatus,
    ConnectedContact,
    ContactEntry,
    ContactRegistry,
)

__all__ = [
    "AddContactResult",
    "AddContactStatus",
    "ConnectedContact",
    "ContactEntry",
    "ContactRegistry",
]
