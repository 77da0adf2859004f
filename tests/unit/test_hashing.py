"""
Hashing Unit Tests
Tests for core/crypto/hashing.py
"""
import pytest

from core.crypto.hashing import (
    DIGEST_SIZE,
    from_hex,
    hash_canonical,
    hash_pair_sorted,
    is_digest,
    sha256,
    to_hex,
)


EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


class TestSha256:

    def test_empty_input(self):
        assert to_hex(sha256(b"")) == EMPTY_SHA256

    def test_known_vector(self):
        assert to_hex(sha256(b"hello")) == (
            "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"
        )

    def test_digest_size(self):
        assert len(sha256(b"x")) == DIGEST_SIZE == 32


class TestHashPairSorted:
    """Parent hashing is independent of child position."""

    def test_commutative(self):
        a, b = sha256(b"a"), sha256(b"b")
        assert hash_pair_sorted(a, b) == hash_pair_sorted(b, a)

    def test_orders_by_raw_bytes(self):
        low = bytes([0x01]) + bytes(31)
        high = bytes([0xFF]) + bytes(31)
        assert hash_pair_sorted(high, low) == sha256(low + high)

    def test_self_pair(self):
        a = sha256(b"a")
        assert hash_pair_sorted(a, a) == sha256(a + a)

    def test_known_parent(self):
        left = from_hex("408bfc3db35bded642983cd4196c4a22924567eb5596c1bbab803d1ac1f8a226")
        right = from_hex("29607aa7f6709aa0f2d7cf22d2a8d068f34778da53c7841bd55455fa960f8103")
        assert to_hex(hash_pair_sorted(left, right)) == (
            "3f7da09cfcd631a0fcbbd6b5a933a596b548c31a9192d8f3eccd706a5be12e9e"
        )


class TestHexConversion:

    def test_round_trip(self):
        digest = sha256(b"payload")
        assert from_hex(to_hex(digest)) == digest

    def test_prefix_and_uppercase_accepted(self):
        digest = sha256(b"payload")
        assert from_hex("0x" + to_hex(digest).upper()) == digest

    def test_to_hex_lowercase_no_prefix(self):
        assert to_hex(bytes([0xAB, 0xCD])) == "abcd"

    @pytest.mark.parametrize("value", ["abc", "zz" * 32, "00" * 31])
    def test_invalid_hex_rejected(self, value):
        with pytest.raises(ValueError):
            from_hex(value)

    def test_any_size_when_unchecked(self):
        assert from_hex("dead", expected_size=None) == b"\xde\xad"

    def test_non_string_rejected(self):
        with pytest.raises(ValueError):
            from_hex(b"00" * 32)


class TestHelpers:

    def test_is_digest(self):
        assert is_digest(sha256(b"x"))
        assert not is_digest(b"short")
        assert not is_digest(to_hex(sha256(b"x")))

    def test_hash_canonical_ignores_key_order(self):
        assert hash_canonical({"a": 1, "b": 2}) == hash_canonical({"b": 2, "a": 1})
