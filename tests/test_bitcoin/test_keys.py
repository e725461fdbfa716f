"""Tests for BIP32 derivation, Base58 and recoverable signatures."""

from __future__ import annotations

import pytest

from paynym_wallet.bitcoin.keys import (
    CURVE_ORDER,
    HARDENED,
    ExtendedKey,
    base58_decode,
    base58_encode,
    base58check_decode,
    base58check_encode,
    compress_public_key,
    decompress_public_key,
    derive_public_child,
    is_valid_private_key,
    private_key_to_public_key,
    recover_public_key,
    sign_recoverable,
)
from paynym_wallet.utils.crypto import sha256

# BIP32 test vector 1
_TV1_SEED = bytes.fromhex("000102030405060708090a0b0c0d0e0f")


# ---------------------------------------------------------------------------
# Base58
# ---------------------------------------------------------------------------


class TestBase58:
    def test_leading_zeros_preserved(self) -> None:
        assert base58_encode(b"\x00\x00\x01") == "112"
        assert base58_decode("112") == b"\x00\x00\x01"

    def test_empty(self) -> None:
        assert base58_encode(b"") == ""
        assert base58_decode("") == b""

    def test_invalid_character(self) -> None:
        with pytest.raises(ValueError, match="Invalid Base58"):
            base58_decode("0OIl")

    def test_check_roundtrip(self) -> None:
        payload = b"\x47" + bytes(range(80))
        assert base58check_decode(base58check_encode(payload)) == payload

    def test_check_detects_corruption(self) -> None:
        encoded = base58check_encode(b"\x00" + b"\x11" * 20)
        tampered = encoded[:-1] + ("2" if encoded[-1] != "2" else "3")
        with pytest.raises(ValueError, match="checksum"):
            base58check_decode(tampered)

    def test_check_too_short(self) -> None:
        with pytest.raises(ValueError, match="too short"):
            base58check_decode("1")


# ---------------------------------------------------------------------------
# Key helpers
# ---------------------------------------------------------------------------


class TestKeyHelpers:
    def test_private_key_range(self) -> None:
        assert is_valid_private_key((1).to_bytes(32, "big"))
        assert is_valid_private_key((CURVE_ORDER - 1).to_bytes(32, "big"))
        assert not is_valid_private_key(bytes(32))
        assert not is_valid_private_key(CURVE_ORDER.to_bytes(32, "big"))
        assert not is_valid_private_key(b"\x01" * 31)

    def test_generator_public_key(self) -> None:
        pub = private_key_to_public_key((1).to_bytes(32, "big"))
        assert pub.hex() == "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"

    def test_compress_decompress(self) -> None:
        priv = bytes.fromhex("11" * 32)
        uncompressed = private_key_to_public_key(priv, compressed=False)
        compressed = private_key_to_public_key(priv)
        assert len(uncompressed) == 65
        assert compress_public_key(uncompressed) == compressed
        assert decompress_public_key(compressed) == uncompressed

    def test_decompress_rejects_bad_prefix(self) -> None:
        with pytest.raises(ValueError, match="prefix"):
            decompress_public_key(b"\x05" + b"\x01" * 32)

    def test_decompress_rejects_off_curve(self) -> None:
        p = 2**256 - 2**32 - 977
        # first x whose x^3 + 7 is a quadratic non-residue
        x = next(x for x in range(1, 100) if pow((x**3 + 7) % p, (p - 1) // 2, p) != 1)
        with pytest.raises(ValueError, match="not on the curve"):
            decompress_public_key(b"\x02" + x.to_bytes(32, "big"))

    def test_decompress_rejects_x_out_of_range(self) -> None:
        p = 2**256 - 2**32 - 977
        with pytest.raises(ValueError, match="out of range"):
            decompress_public_key(b"\x02" + p.to_bytes(32, "big"))


# ---------------------------------------------------------------------------
# BIP32
# ---------------------------------------------------------------------------


class TestExtendedKey:
    def test_master_from_vector_1(self) -> None:
        master = ExtendedKey.from_seed(_TV1_SEED)
        assert master.key.hex() == "e8f32e723decf4051aefac8e2c93c9c5b214313817cdb01a1494b917c8436b35"
        assert master.chain_code.hex() == (
            "873dff81c02f525623fd1fe5167eac3a55a049de3d314bb42ee227ffed37d508"
        )
        assert master.public_key().hex() == (
            "0339a36013301597daef41fbe593a02cc513d0b55527ec2df1050e2e8ff49c85c2"
        )
        assert master.depth == 0

    def test_hardened_child_vector_1(self) -> None:
        child = ExtendedKey.from_seed(_TV1_SEED).derive_path("m/0'")
        assert child.key.hex() == "edb2e14f9ee77d26dd93b4ecede8d16ed408ce149b6cd80b0715a2d911a0afea"
        assert child.chain_code.hex() == (
            "47fdacbd0f1097043b78c63c20c34ef4ed9a111d980047ad16282c7ae6236141"
        )
        assert child.depth == 1
        assert child.child_index == HARDENED

    def test_path_notations_agree(self) -> None:
        master = ExtendedKey.from_seed(_TV1_SEED)
        assert master.derive_path("m/47'/0'/0'") == master.derive_path("m/47h/0h/0h")

    def test_seed_length_checked(self) -> None:
        with pytest.raises(ValueError, match="16-64"):
            ExtendedKey.from_seed(b"\x00" * 8)

    def test_public_derivation_matches_private(self) -> None:
        node = ExtendedKey.from_seed(_TV1_SEED).derive_path("m/47'/0'/0'")
        for index in (0, 1, 7):
            expected = node.derive_child(index).public_key()
            assert derive_public_child(node.public_key(), node.chain_code, index) == expected

    def test_public_derivation_rejects_hardened(self) -> None:
        node = ExtendedKey.from_seed(_TV1_SEED)
        with pytest.raises(ValueError, match="hardened"):
            derive_public_child(node.public_key(), node.chain_code, HARDENED)


# ---------------------------------------------------------------------------
# Recoverable signatures
# ---------------------------------------------------------------------------


class TestRecoverableSignature:
    def test_recovers_signer(self) -> None:
        priv = bytes.fromhex("2b" * 32)
        digest = sha256(b"paynym")
        recid, r, s = sign_recoverable(priv, digest)
        assert 0 <= recid <= 3
        assert recover_public_key(digest, r, s, recid) == private_key_to_public_key(priv)

    def test_low_s(self) -> None:
        priv = bytes.fromhex("3c" * 32)
        for i in range(5):
            _, _, s = sign_recoverable(priv, sha256(bytes([i])))
            assert s <= CURVE_ORDER // 2

    def test_deterministic(self) -> None:
        priv = bytes.fromhex("4d" * 32)
        digest = sha256(b"same")
        assert sign_recoverable(priv, digest) == sign_recoverable(priv, digest)

    def test_out_of_range_values_rejected(self) -> None:
        with pytest.raises(ValueError, match="out of range"):
            recover_public_key(sha256(b"x"), 0, 1, 0)
        with pytest.raises(ValueError, match="out of range"):
            recover_public_key(sha256(b"x"), 1, 1, 4)
