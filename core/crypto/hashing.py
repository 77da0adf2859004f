"""
Hashing Utilities

SHA-256 primitives shared by the leaf codec and the Merkle builder.

Security/Determinism Notes:
- Always hash raw bytes exactly as given
- Digests are 32 raw bytes internally; hex (lowercase, no prefix) at the edges
"""
from __future__ import annotations

import hashlib
from typing import Any

from core.schemas.canonical import dumps_canonical


# Size of every leaf and node digest
DIGEST_SIZE = 32


def sha256(data: bytes) -> bytes:
    """
    Compute SHA-256 hash of raw bytes.

    Example:
        >>> sha256(b"hello").hex()
        '2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
    """
    return hashlib.sha256(data).digest()


def hash_canonical(obj: Any) -> bytes:
    """Hash an object via its canonical JSON serialization."""
    return sha256(dumps_canonical(obj).encode("utf-8"))


def hash_pair_sorted(a: bytes, b: bytes) -> bytes:
    """
    Hash two digests after ordering them as raw byte strings.

    parent = sha256(min(a, b) + max(a, b))

    Position-independent: hash_pair_sorted(a, b) == hash_pair_sorted(b, a).
    """
    if a <= b:
        return sha256(a + b)
    return sha256(b + a)


def is_digest(value: Any) -> bool:
    """True if value is a 32-byte digest."""
    return isinstance(value, (bytes, bytearray)) and len(value) == DIGEST_SIZE


def to_hex(data: bytes) -> str:
    """
    Convert bytes to a lowercase hexadecimal string (no prefix).

    Example:
        >>> to_hex(bytes.fromhex("deadbeef"))
        'deadbeef'
    """
    return data.hex()


def from_hex(hex_string: str, *, expected_size: int | None = DIGEST_SIZE) -> bytes:
    """
    Convert a hexadecimal string to bytes.

    A ``0x`` prefix is tolerated; upper-case digits are accepted.

    Args:
        hex_string: Hex string
        expected_size: Required decoded length in bytes, or None for any

    Raises:
        ValueError: On odd length, invalid characters or wrong size
    """
    if not isinstance(hex_string, str):
        raise ValueError(f"Expected hex string, got {type(hex_string).__name__}")

    hex_content = hex_string[2:] if hex_string.startswith(("0x", "0X")) else hex_string

    if len(hex_content) % 2 != 0:
        raise ValueError(
            f"Hex string must have even length, got length {len(hex_content)}"
        )

    try:
        data = bytes.fromhex(hex_content)
    except ValueError as e:
        raise ValueError(f"Invalid hex characters in string: {e}") from e

    if expected_size is not None and len(data) != expected_size:
        raise ValueError(
            f"Expected {expected_size}-byte value, got {len(data)} bytes"
        )
    return data


__all__ = [
    "DIGEST_SIZE",
    "sha256",
    "hash_canonical",
    "hash_pair_sorted",
    "is_digest",
    "to_hex",
    "from_hex",
]
