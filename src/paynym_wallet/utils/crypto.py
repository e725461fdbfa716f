"""Cryptographic helpers — hashing, varints, message digests."""

from __future__ import annotations

import hashlib
import struct

from embit import hashes

# Bitcoin signed-message domain separator
MESSAGE_MAGIC = b"Bitcoin Signed Message:\n"


def sha256(data: bytes) -> bytes:
    """Single SHA-256 hash."""
    return hashlib.sha256(data).digest()


def sha256d(data: bytes) -> bytes:
    """Double SHA-256 hash (SHA256(SHA256(data)))."""
    return sha256(sha256(data))


def hash160(data: bytes) -> bytes:
    """RIPEMD-160(SHA-256(data)) — standard Bitcoin Hash160.

    embit falls back to a pure-Python RIPEMD-160 where OpenSSL lacks it.
    """
    return hashes.hash160(data)


def varint(n: int) -> bytes:
    """Encode a non-negative integer as a Bitcoin CompactSize varint."""
    if n < 0xFD:
        return struct.pack("B", n)
    if n <= 0xFFFF:
        return b"\xfd" + struct.pack("<H", n)
    if n <= 0xFFFFFFFF:
        return b"\xfe" + struct.pack("<I", n)
    return b"\xff" + struct.pack("<Q", n)


def message_digest(message: str) -> bytes:
    """Digest signed by the Bitcoin message-signing scheme.

    ``SHA256d(varint(len(magic)) || magic || varint(len(msg)) || msg)``
    with the message encoded as UTF-8.
    """
    payload = message.encode("utf-8")
    return sha256d(varint(len(MESSAGE_MAGIC)) + MESSAGE_MAGIC + varint(len(payload)) + payload)
