"""Address encoding and classification.

Bitcoin address operations used by contact handling:
- P2PKH address generation from public keys (notification addresses)
- Base58Check (P2PKH / P2SH) and bech32 / bech32m (segwit) validation
- BIP352 silent-payment code recognition
"""

from __future__ import annotations

from embit import bech32

from paynym_wallet.bitcoin.keys import base58check_decode, base58check_encode
from paynym_wallet.utils.crypto import hash160

# Network version bytes
_MAINNET_PUBKEY_HASH = b"\x00"  # 1...
_TESTNET_PUBKEY_HASH = b"\x6f"  # m... or n...
_BASE58_VERSIONS = (0x00, 0x05, 0x6F, 0xC4)  # p2pkh / p2sh, main / test

_SEGWIT_HRPS = ("bc", "tb", "bcrt")
_SILENT_PAYMENT_HRPS = ("sp", "tsp")
_SILENT_PAYMENT_PAYLOAD_LEN = 66  # B_scan || B_spend, both compressed


def pubkey_to_address(pubkey: bytes, *, testnet: bool = False) -> str:
    """Generate a P2PKH address from a compressed/uncompressed public key.

    Args:
        pubkey: 33-byte compressed or 65-byte uncompressed public key.
        testnet: If True, use testnet version byte.

    Returns:
        Base58Check-encoded P2PKH address.
    """
    version = _TESTNET_PUBKEY_HASH if testnet else _MAINNET_PUBKEY_HASH
    return base58check_encode(version + hash160(pubkey))


def validate_base58_address(address: str) -> bool:
    """Check if an address is a valid Base58Check P2PKH or P2SH address."""
    try:
        payload = base58check_decode(address)
    except ValueError:
        return False
    return len(payload) == 21 and payload[0] in _BASE58_VERSIONS


def validate_segwit_address(address: str) -> bool:
    """Check if an address is a valid bech32 / bech32m segwit address."""
    hrp = address.lower().rsplit("1", 1)[0]
    if hrp not in _SEGWIT_HRPS:
        return False
    witver, witprog = bech32.decode(hrp, address)
    return witver is not None and witprog is not None


def validate_address(address: str) -> bool:
    """Check if ``address`` is any on-chain Bitcoin address we can pay."""
    address = address.strip()
    if not address:
        return False
    return validate_base58_address(address) or validate_segwit_address(address)


def validate_silent_payment_code(code: str) -> bool:
    """Check if ``code`` is a BIP352 silent-payment address (``sp1q...``).

    Silent-payment codes exceed the 90-character bech32 limit, so the
    checksum is verified directly rather than through ``bech32.decode``.
    """
    code = code.strip()
    if code.lower() != code and code.upper() != code:
        return False
    code = code.lower()
    pos = code.rfind("1")
    if pos < 1 or pos + 7 > len(code):
        return False
    hrp = code[:pos]
    if hrp not in _SILENT_PAYMENT_HRPS:
        return False
    data = [bech32.CHARSET.find(c) for c in code[pos + 1 :]]
    if any(d < 0 for d in data):
        return False
    if bech32.bech32_verify_checksum(hrp, data) != bech32.Encoding.BECH32M:
        return False
    values = data[:-6]
    if not values or values[0] != 0:
        return False
    payload = bech32.convertbits(values[1:], 5, 8, False)
    if payload is None or len(payload) != _SILENT_PAYMENT_PAYLOAD_LEN:
        return False
    return payload[0] in (0x02, 0x03) and payload[33] in (0x02, 0x03)
