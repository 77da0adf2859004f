"""
Schemas & Canonicalization
File: tests/unit/test_canonical_json.py

Unit tests for canonical JSON and timestamp handling. Receipt hashes and
leaf timestamps depend on these being deterministic across runs.
"""

import json
import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum

import pytest
from pydantic import BaseModel

from core.crypto.hashing import hash_canonical
from core.schemas import (
    BatchStatus,
    dumps_canonical,
    ensure_utc,
    format_timestamp_canonical,
    parse_timestamp,
)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def sample_datetime_utc():
    return datetime(2025, 2, 2, 10, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_datetime_naive():
    return datetime(2025, 2, 2, 10, 30, 0)


@pytest.fixture
def sample_datetime_offset():
    # 16:00 IST is 10:30 UTC
    return datetime(2025, 2, 2, 16, 0, 0, tzinfo=timezone(timedelta(hours=5, minutes=30)))


class Sample(BaseModel):
    zeta: int
    alpha: str
    maybe: str | None = None


# =============================================================================
# Key ordering and determinism
# =============================================================================

class TestDeterminism:

    def test_dict_keys_sorted(self):
        assert dumps_canonical({"b": 1, "a": 2}) == '{"a":2,"b":1}'

    def test_nested_dict_keys_sorted(self):
        assert dumps_canonical({"z": {"y": 1, "x": 2}}) == '{"z":{"x":2,"y":1}}'

    def test_model_fields_sorted(self):
        assert dumps_canonical(Sample(zeta=1, alpha="a")) == '{"alpha":"a","zeta":1}'

    def test_random_insertion_order_deterministic(self):
        items = [(f"k{i}", i) for i in range(20)]
        rng = random.Random(7)
        outputs = set()
        for _ in range(10):
            rng.shuffle(items)
            outputs.add(dumps_canonical(dict(items)))
        assert len(outputs) == 1

    def test_hash_follows_canonical_form(self):
        assert hash_canonical({"b": 1, "a": 2}) == hash_canonical({"a": 2, "b": 1})
        assert len(hash_canonical({})) == 32


# =============================================================================
# Timestamps
# =============================================================================

class TestTimestamps:

    def test_ensure_utc_naive(self, sample_datetime_naive):
        assert ensure_utc(sample_datetime_naive).tzinfo == timezone.utc

    def test_ensure_utc_converts_offset(self, sample_datetime_offset, sample_datetime_utc):
        assert ensure_utc(sample_datetime_offset) == sample_datetime_utc
        assert ensure_utc(sample_datetime_offset).hour == 10

    def test_format_with_z_suffix(self, sample_datetime_utc):
        assert format_timestamp_canonical(sample_datetime_utc) == "2025-02-02T10:30:00Z"

    def test_naive_and_offset_format_same(
        self, sample_datetime_naive, sample_datetime_offset
    ):
        assert format_timestamp_canonical(sample_datetime_naive) == format_timestamp_canonical(
            sample_datetime_offset
        )

    def test_sub_second_rejected(self, sample_datetime_utc):
        with pytest.raises(ValueError, match="second precision"):
            format_timestamp_canonical(sample_datetime_utc.replace(microsecond=500))

    @pytest.mark.parametrize("text", [
        "2025-02-02T10:30:00Z",
        "2025-02-02T10:30:00z",
        "2025-02-02T10:30:00+00:00",
        "2025-02-02T16:00:00+05:30",
        " 2025-02-02T10:30:00Z ",
    ])
    def test_parse_variants(self, text, sample_datetime_utc):
        assert parse_timestamp(text) == sample_datetime_utc

    def test_parse_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_timestamp("yesterday")

    def test_datetime_in_json(self, sample_datetime_offset):
        assert dumps_canonical({"at": sample_datetime_offset}) == '{"at":"2025-02-02T10:30:00Z"}'

    def test_microseconds_kept_in_json(self, sample_datetime_utc):
        value = sample_datetime_utc.replace(microsecond=123456)
        assert json.loads(dumps_canonical({"at": value}))["at"] == "2025-02-02T10:30:00.123456Z"


# =============================================================================
# Value handling
# =============================================================================

class TestValues:

    def test_none_excluded(self):
        assert dumps_canonical({"a": None, "b": 1}) == '{"b":1}'
        assert dumps_canonical(Sample(zeta=1, alpha="a", maybe=None)) == '{"alpha":"a","zeta":1}'

    def test_falsy_values_kept(self):
        assert dumps_canonical({"a": "", "b": 0, "c": False}) == '{"a":"","b":0,"c":false}'

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_float_rejected(self, value):
        with pytest.raises(ValueError):
            dumps_canonical({"x": [value]})

    def test_decimal_as_string(self):
        assert dumps_canonical({"amount": Decimal("1000.00")}) == '{"amount":"1000.00"}'

    def test_bytes_as_hex(self):
        assert dumps_canonical({"d": b"\x00\xff"}) == '{"d":"00ff"}'

    def test_enum_as_value(self):
        class Color(Enum):
            RED = "red"

        assert dumps_canonical([Color.RED, BatchStatus.ANCHORING]) == '["red","anchoring"]'

    def test_unsupported_type(self):
        with pytest.raises(ValueError, match="Cannot canonicalize"):
            dumps_canonical({"s": {1, 2}})

    def test_non_ascii_preserved(self):
        assert dumps_canonical({"name": "Meera ₹"}) == '{"name":"Meera ₹"}'
