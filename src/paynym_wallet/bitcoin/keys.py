"""BIP32 HD key derivation and secp256k1 helpers.

Implements the key machinery payment codes are built on:
- Base58 / Base58Check encoding (payment codes, addresses)
- Child key derivation (hardened & normal) from a BIP32 seed
- Compressed / uncompressed public key encoding
- Recoverable ECDSA signatures (RFC6979 nonce, low-S) and key recovery
"""

from __future__ import annotations

import hashlib
import hmac
import struct
from dataclasses import dataclass

from ecdsa import SECP256k1, SigningKey
from ecdsa.ellipticcurve import INFINITY, Point

from paynym_wallet.utils.crypto import hash160, sha256d

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_CURVE = SECP256k1
CURVE_ORDER = _CURVE.order
_CURVE_GEN = _CURVE.generator

# BIP32 seed HMAC key
_MASTER_HMAC_KEY = b"Bitcoin seed"

HARDENED = 0x80000000


# ---------------------------------------------------------------------------
# Base58Check encoding / decoding
# ---------------------------------------------------------------------------

B58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


def base58_encode(payload: bytes) -> str:
    """Encode raw bytes to Base58 (no checksum)."""
    n = int.from_bytes(payload, "big")
    result: list[str] = []
    while n > 0:
        n, remainder = divmod(n, 58)
        result.append(B58_ALPHABET[remainder])
    # Preserve leading zero bytes
    for byte in payload:
        if byte == 0:
            result.append(B58_ALPHABET[0])
        else:
            break
    return "".join(reversed(result))


def base58_decode(s: str) -> bytes:
    """Decode Base58 string to raw bytes (no checksum).

    Raises:
        ValueError: If ``s`` contains a character outside the alphabet.
    """
    n = 0
    for char in s:
        idx = B58_ALPHABET.find(char)
        if idx < 0:
            msg = f"Invalid Base58 character: {char!r}"
            raise ValueError(msg)
        n = n * 58 + idx
    result = n.to_bytes((n.bit_length() + 7) // 8, "big") if n > 0 else b""
    pad_count = len(s) - len(s.lstrip("1"))
    return b"\x00" * pad_count + result


def base58check_encode(payload: bytes) -> str:
    """Encode bytes with a 4-byte SHA256d checksum (Base58Check)."""
    return base58_encode(payload + sha256d(payload)[:4])


def base58check_decode(s: str) -> bytes:
    """Decode a Base58Check string, verifying the checksum.

    Raises:
        ValueError: If the string is malformed or the checksum is invalid.
    """
    raw = base58_decode(s)
    if len(raw) < 4:
        msg = "Base58Check string too short"
        raise ValueError(msg)
    payload, checksum = raw[:-4], raw[-4:]
    if sha256d(payload)[:4] != checksum:
        msg = "Base58Check checksum mismatch"
        raise ValueError(msg)
    return payload


# ---------------------------------------------------------------------------
# ECDSA helpers
# ---------------------------------------------------------------------------


def is_valid_private_key(privkey_bytes: bytes) -> bool:
    """Check that a 32-byte scalar lies in ``[1, n-1]``."""
    if len(privkey_bytes) != 32:
        return False
    return 0 < int.from_bytes(privkey_bytes, "big") < CURVE_ORDER


def private_key_to_public_key(privkey_bytes: bytes, *, compressed: bool = True) -> bytes:
    """Derive the public key from a 32-byte private key.

    Args:
        privkey_bytes: 32-byte big-endian scalar.
        compressed: If True, return the 33-byte SEC compressed encoding.

    Returns:
        The public key bytes (33 compressed or 65 uncompressed).
    """
    sk = SigningKey.from_string(privkey_bytes, curve=_CURVE)
    raw = sk.get_verifying_key().to_string()
    if compressed:
        return compress_public_key(raw)
    return b"\x04" + raw


def compress_public_key(raw_pubkey: bytes) -> bytes:
    """Compress a 64-byte (or 65-byte with 0x04 prefix) raw public key to 33 bytes."""
    if len(raw_pubkey) == 65 and raw_pubkey[0] == 0x04:
        raw_pubkey = raw_pubkey[1:]
    if len(raw_pubkey) != 64:
        if len(raw_pubkey) == 33 and raw_pubkey[0] in (0x02, 0x03):
            return raw_pubkey  # Already compressed
        msg = f"Invalid raw public key length: {len(raw_pubkey)}"
        raise ValueError(msg)
    x = int.from_bytes(raw_pubkey[:32], "big")
    y = int.from_bytes(raw_pubkey[32:], "big")
    prefix = b"\x02" if y % 2 == 0 else b"\x03"
    return prefix + x.to_bytes(32, "big")


def decompress_public_key(compressed: bytes) -> bytes:
    """Decompress a 33-byte compressed public key to 65-byte uncompressed.

    Raises:
        ValueError: If the encoding is invalid or ``x`` is not on the curve.
    """
    if len(compressed) != 33:
        msg = f"Invalid compressed key length: {len(compressed)}"
        raise ValueError(msg)
    prefix = compressed[0]
    if prefix not in (0x02, 0x03):
        msg = f"Invalid compressed key prefix: {prefix:#x}"
        raise ValueError(msg)
    x = int.from_bytes(compressed[1:], "big")
    p = _CURVE.curve.p()
    if x >= p:
        msg = "Public key x coordinate out of range"
        raise ValueError(msg)
    # y^2 = x^3 + 7  (mod p)  for secp256k1
    y_sq = (pow(x, 3, p) + 7) % p
    y = pow(y_sq, (p + 1) // 4, p)
    if pow(y, 2, p) != y_sq:
        msg = "Public key x coordinate is not on the curve"
        raise ValueError(msg)
    if (y % 2 == 0) != (prefix == 0x02):
        y = p - y
    return b"\x04" + x.to_bytes(32, "big") + y.to_bytes(32, "big")


def sign_recoverable(privkey_bytes: bytes, digest: bytes) -> tuple[int, int, int]:
    """Sign a 32-byte digest, returning ``(recid, r, s)``.

    The nonce is derived per RFC6979 (SHA-256), so the same key and digest
    always produce the same signature. ``s`` is normalised to the lower half
    of the curve order.
    """
    sk = SigningKey.from_string(privkey_bytes, curve=_CURVE)
    r, s = sk.sign_digest_deterministic(
        digest,
        hashfunc=hashlib.sha256,
        sigencode=lambda r, s, order: (r, s),
    )
    if s > CURVE_ORDER // 2:
        s = CURVE_ORDER - s
    pubkey = private_key_to_public_key(privkey_bytes)
    for recid in range(4):
        try:
            candidate = recover_public_key(digest, r, s, recid)
        except ValueError:
            continue
        if candidate == pubkey:
            return recid, r, s
    msg = "Could not determine signature recovery id"
    raise ValueError(msg)


def recover_public_key(digest: bytes, r: int, s: int, recid: int) -> bytes:
    """Recover the compressed public key that produced ``(r, s)`` over ``digest``.

    Raises:
        ValueError: If the signature values do not yield a valid point.
    """
    if not (0 < r < CURVE_ORDER and 0 < s < CURVE_ORDER) or not 0 <= recid <= 3:
        msg = "Signature values out of range"
        raise ValueError(msg)
    x = r + (recid // 2) * CURVE_ORDER
    if x >= _CURVE.curve.p():
        msg = "Signature r value out of field range"
        raise ValueError(msg)
    prefix = b"\x03" if recid & 1 else b"\x02"
    big_r = pubkey_to_point(prefix + x.to_bytes(32, "big"))
    e = int.from_bytes(digest, "big")
    r_inv = pow(r, -1, CURVE_ORDER)
    # Q = r^-1 * (s*R - e*G)
    q = (_CURVE_GEN * ((-e * r_inv) % CURVE_ORDER)) + (big_r * ((s * r_inv) % CURVE_ORDER))
    if q == INFINITY:
        msg = "Recovered point at infinity"
        raise ValueError(msg)
    return point_to_compressed(q)


def derive_public_child(pubkey: bytes, chain_code: bytes, index: int) -> bytes:
    """Non-hardened BIP32 public derivation: ``point(il) + parent``.

    Raises:
        ValueError: If ``index`` is hardened or the child key is invalid.
    """
    if index >= HARDENED:
        msg = "Cannot derive hardened child from public key"
        raise ValueError(msg)
    data = pubkey + struct.pack(">I", index)
    il = hmac.new(chain_code, data, hashlib.sha512).digest()[:32]
    il_int = int.from_bytes(il, "big")
    if il_int >= CURVE_ORDER:
        msg = "Derived key is invalid (il >= curve order)"
        raise ValueError(msg)
    child_point = (_CURVE_GEN * il_int) + pubkey_to_point(pubkey)
    if child_point == INFINITY:
        msg = "Derived key is invalid (point at infinity)"
        raise ValueError(msg)
    return point_to_compressed(child_point)


def pubkey_to_point(compressed: bytes) -> Point:
    """Decode a 33-byte compressed public key to an elliptic curve point."""
    uncompressed = decompress_public_key(compressed)
    x = int.from_bytes(uncompressed[1:33], "big")
    y = int.from_bytes(uncompressed[33:65], "big")
    return Point(_CURVE.curve, x, y, CURVE_ORDER)


def point_to_compressed(point) -> bytes:  # type: ignore[no-untyped-def]
    """Encode an elliptic curve point as a 33-byte compressed public key."""
    x_bytes = point.x().to_bytes(32, "big")
    prefix = b"\x02" if point.y() % 2 == 0 else b"\x03"
    return prefix + x_bytes


# ---------------------------------------------------------------------------
# BIP32 Extended Key
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExtendedKey:
    """A BIP32 extended private key.

    Attributes:
        key: 32-byte private scalar.
        chain_code: 32-byte chain code.
        depth: Derivation depth (0 for master).
        parent_fingerprint: First 4 bytes of parent's Hash160(pubkey).
        child_index: Index used in derivation.
    """

    key: bytes
    chain_code: bytes
    depth: int
    parent_fingerprint: bytes
    child_index: int

    def public_key(self) -> bytes:
        """Return the 33-byte compressed public key."""
        return private_key_to_public_key(self.key, compressed=True)

    def fingerprint(self) -> bytes:
        """First 4 bytes of Hash160(compressed pubkey)."""
        return hash160(self.public_key())[:4]

    def derive_child(self, index: int) -> ExtendedKey:
        """Derive a child key at the given index.

        Use ``index >= 0x80000000`` for hardened derivation.

        Raises:
            ValueError: If the derived key is invalid.
        """
        if index >= HARDENED:
            # Data = 0x00 || private_key || index
            data = b"\x00" + self.key + struct.pack(">I", index)
        else:
            # Data = compressed_pubkey || index
            data = self.public_key() + struct.pack(">I", index)

        hmac_result = hmac.new(self.chain_code, data, hashlib.sha512).digest()
        il, ir = hmac_result[:32], hmac_result[32:]

        il_int = int.from_bytes(il, "big")
        if il_int >= CURVE_ORDER:
            msg = "Derived key is invalid (il >= curve order)"
            raise ValueError(msg)

        key_int = (il_int + int.from_bytes(self.key, "big")) % CURVE_ORDER
        if key_int == 0:
            msg = "Derived key is invalid (key == 0)"
            raise ValueError(msg)

        return ExtendedKey(
            key=key_int.to_bytes(32, "big"),
            chain_code=ir,
            depth=self.depth + 1,
            parent_fingerprint=self.fingerprint(),
            child_index=index,
        )

    def derive_path(self, path: str) -> ExtendedKey:
        """Derive using a BIP32 path string like ``m/47'/0'/0'``.

        Apostrophe (') or h indicates hardened derivation.
        """
        key = self
        for part in path.strip().split("/"):
            if part in ("m", "M", ""):
                continue
            hardened = part.endswith(("'", "h", "H"))
            idx = int(part.rstrip("'hH"))
            if hardened:
                idx += HARDENED
            key = key.derive_child(idx)
        return key

    @classmethod
    def from_seed(cls, seed: bytes) -> ExtendedKey:
        """Create a master private extended key from a BIP32 seed.

        Args:
            seed: 16-64 byte seed (typically 64 from a BIP39 mnemonic).

        Raises:
            ValueError: If seed length is out of range.
        """
        if not 16 <= len(seed) <= 64:
            msg = f"Seed must be 16-64 bytes, got {len(seed)}"
            raise ValueError(msg)
        hmac_result = hmac.new(_MASTER_HMAC_KEY, seed, hashlib.sha512).digest()
        il, ir = hmac_result[:32], hmac_result[32:]
        il_int = int.from_bytes(il, "big")
        if il_int == 0 or il_int >= CURVE_ORDER:
            msg = "Invalid seed (derived key out of range)"
            raise ValueError(msg)
        return cls(
            key=il,
            chain_code=ir,
            depth=0,
            parent_fingerprint=b"\x00\x00\x00\x00",
            child_index=0,
        )
