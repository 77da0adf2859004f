"""
Leaf Codec

Turns one donation record into its canonical byte string and SHA-256
leaf hash.

Canonical Serialization (v1, FROZEN):
    id|amount|currency|payment_id|external_reference|created_at|payment_method|donor|anonymous

    - amount: exactly two decimal places, "." separator ("1000.00")
    - external_reference: "NULL" when absent or empty
    - created_at: second-precision UTC, "2025-02-02T10:30:00Z"
    - donor: "ANONYMOUS" when absent, empty, or anonymous is true
    - anonymous: "true" / "false"

Leaf hash: sha256(serialization.encode("utf-8"))

Example:
    "abc-123|1000.00|INR|pay_xyz|UPI123|2025-02-02T10:30:00Z|upi|John|false"
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Sequence, Union

from pydantic import ValidationError

from core.crypto.hashing import sha256, to_hex
from core.schemas.canonical import format_timestamp_canonical
from core.schemas.donation import DonationRecord
from core.schemas.errors import CodecError
from core.schemas.versioning import CODEC_VERSION


logger = logging.getLogger(__name__)


FIELD_SEPARATOR = "|"
NULL_TOKEN = "NULL"
ANONYMOUS_TOKEN = "ANONYMOUS"

# Legacy row keys accepted by coerce_donation
_FIELD_ALIASES = {
    "amount_inr": "amount",
    "upi_reference": "external_reference",
}

DonationLike = Union[DonationRecord, Mapping[str, Any]]


def coerce_donation(raw: DonationLike) -> DonationRecord:
    """
    Validate a raw donation row into a DonationRecord.

    Raises:
        CodecError: If any required field is missing or malformed.
    """
    if isinstance(raw, DonationRecord):
        return raw

    if not isinstance(raw, Mapping):
        raise CodecError(
            f"Donation must be a mapping or DonationRecord, got {type(raw).__name__}"
        )

    data = dict(raw)
    for legacy, current in _FIELD_ALIASES.items():
        if legacy in data and current not in data:
            data[current] = data.pop(legacy)

    donation_id = data.get("id")
    donation_id = str(donation_id) if donation_id is not None else None

    try:
        return DonationRecord.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field_path = ".".join(str(p) for p in first.get("loc", ()))
        raise CodecError(
            f"Malformed donation {donation_id or '<no id>'}: {field_path}: {first.get('msg')}",
            donation_id=donation_id,
            field_path=field_path or None,
            details={"errors": [
                {"loc": ".".join(str(p) for p in err.get("loc", ())), "msg": err.get("msg")}
                for err in e.errors()
            ]},
        ) from e


def format_amount(amount: Decimal) -> str:
    """Render an amount with exactly two decimals, never rounding."""
    try:
        quantized = amount.quantize(Decimal("0.01"))
    except InvalidOperation as e:
        raise CodecError(f"Amount {amount} is out of range") from e
    if quantized != amount:
        raise CodecError(f"Amount {amount} has more than two decimal places")
    return f"{quantized:.2f}"


def serialize_str(donation: DonationLike) -> str:
    """Canonical serialization as a str."""
    record = coerce_donation(donation)

    if record.anonymous or not record.donor_name:
        donor = ANONYMOUS_TOKEN
    else:
        donor = record.donor_name

    parts = [
        record.id,
        format_amount(record.amount),
        record.currency,
        record.payment_id,
        record.external_reference or NULL_TOKEN,
        format_timestamp_canonical(record.created_at),
        record.payment_method,
        donor,
        "true" if record.anonymous else "false",
    ]
    return FIELD_SEPARATOR.join(parts)


def serialize(donation: DonationLike) -> bytes:
    """
    Canonical serialization as UTF-8 bytes.

    Raises:
        CodecError: If the donation is malformed.
    """
    return serialize_str(donation).encode("utf-8")


def leaf_hash(donation: DonationLike) -> bytes:
    """32-byte SHA-256 leaf hash of a donation."""
    return sha256(serialize(donation))


def leaf_hash_hex(donation: DonationLike) -> str:
    """Leaf hash as 64 lowercase hex characters."""
    return to_hex(leaf_hash(donation))


@dataclass
class LeafHashResult:
    """
    Outcome of hashing an ordered set of donations.

    hashes[i] corresponds to donations[i]; slots for malformed donations
    are None and their errors listed in failures.
    """
    records: list[DonationRecord | None]
    hashes: list[bytes | None]
    failures: list[tuple[int, CodecError]] = field(default_factory=list)
    codec_version: str = CODEC_VERSION

    @property
    def ok_count(self) -> int:
        return sum(1 for h in self.hashes if h is not None)

    def included(self) -> list[tuple[DonationRecord, bytes]]:
        """Well-formed donations and their hashes, in original order."""
        return [
            (record, digest)
            for record, digest in zip(self.records, self.hashes)
            if record is not None and digest is not None
        ]


def _hash_one(raw: DonationLike) -> tuple[DonationRecord, bytes]:
    record = coerce_donation(raw)
    return record, leaf_hash(record)


def hash_donations(
    donations: Sequence[DonationLike],
    *,
    workers: int = 1,
) -> LeafHashResult:
    """
    Hash every donation, writing each result into its index slot.

    Malformed donations do not abort the run; they are collected in
    ``failures`` so the caller can exclude them and notify an operator.

    Args:
        donations: Ordered donations (order is leaf order)
        workers: Thread count; 1 hashes sequentially
    """
    n = len(donations)
    records: list[DonationRecord | None] = [None] * n
    hashes: list[bytes | None] = [None] * n
    failures: list[tuple[int, CodecError]] = []

    def _run(index: int) -> tuple[int, DonationRecord | None, bytes | None, CodecError | None]:
        try:
            record, digest = _hash_one(donations[index])
        except CodecError as e:
            return index, None, None, e
        return index, record, digest, None

    if workers <= 1 or n <= 1:
        outcomes = [_run(i) for i in range(n)]
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(_run, range(n)))

    for index, record, digest, error in outcomes:
        if error is not None:
            failures.append((index, error))
            continue
        records[index] = record
        hashes[index] = digest

    for index, error in failures:
        logger.error(f"Excluding donation at position {index}: {error.message}")

    return LeafHashResult(records=records, hashes=hashes, failures=failures)


__all__ = [
    "FIELD_SEPARATOR",
    "NULL_TOKEN",
    "ANONYMOUS_TOKEN",
    "LeafHashResult",
    "coerce_donation",
    "format_amount",
    "serialize",
    "serialize_str",
    "leaf_hash",
    "leaf_hash_hex",
    "hash_donations",
]
