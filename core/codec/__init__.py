"""
Leaf Codec

Canonical donation serialization and leaf hashing.

Usage:
    from core.codec import serialize, leaf_hash

    data = serialize(donation)     # b"abc-123|1000.00|INR|..."
    digest = leaf_hash(donation)   # 32 bytes
"""
from .leaf import (
    ANONYMOUS_TOKEN,
    FIELD_SEPARATOR,
    NULL_TOKEN,
    LeafHashResult,
    coerce_donation,
    format_amount,
    hash_donations,
    leaf_hash,
    leaf_hash_hex,
    serialize,
    serialize_str,
)

__all__ = [
    "ANONYMOUS_TOKEN",
    "FIELD_SEPARATOR",
    "NULL_TOKEN",
    "LeafHashResult",
    "coerce_donation",
    "format_amount",
    "hash_donations",
    "leaf_hash",
    "leaf_hash_hex",
    "serialize",
    "serialize_str",
]
