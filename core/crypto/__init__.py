"""
Core cryptographic utilities.

SHA-256 hashing and hex helpers for leaf and node digests.
"""
from .hashing import (
    DIGEST_SIZE,
    sha256,
    hash_canonical,
    hash_pair_sorted,
    is_digest,
    to_hex,
    from_hex,
)

__all__ = [
    "DIGEST_SIZE",
    "sha256",
    "hash_canonical",
    "hash_pair_sorted",
    "is_digest",
    "to_hex",
    "from_hex",
]
