"""
Schemas
File: donation.py

Purpose: Donation records as the anchoring engine sees them, and the
leaf assignment a donation receives when its batch is closed.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .canonical import format_timestamp_canonical, parse_timestamp


class DonationRecord(BaseModel):
    """
    Immutable donation fields that feed the leaf codec.

    Every field here is part of the canonical serialization; adding,
    removing or reinterpreting one breaks previously anchored batches.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str = Field(..., min_length=1, description="Donation identifier")
    amount: Decimal = Field(..., description="Amount, at most two decimal places")
    currency: str = Field(..., pattern=r"^[A-Z]{3}$", description="ISO-4217 code")
    payment_id: str = Field(..., min_length=1, description="Gateway payment id")
    payment_method: str = Field(..., min_length=1, description="e.g. upi, card")
    external_reference: str | None = Field(
        default=None,
        description="External reference such as a UPI reference",
    )
    created_at: datetime = Field(..., description="Creation time, second precision")
    donor_name: str | None = Field(default=None)
    anonymous: bool = Field(default=False)

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> Any:
        # Floats go through str() so 100.1 becomes Decimal("100.1"), not its binary expansion
        if isinstance(value, float):
            return str(value)
        return value

    @field_validator("amount")
    @classmethod
    def _check_amount(cls, value: Decimal) -> Decimal:
        if not value.is_finite():
            raise ValueError("amount must be finite")
        if value < 0:
            raise ValueError("amount must not be negative")
        try:
            quantized = value.quantize(Decimal("0.01"))
        except InvalidOperation:
            raise ValueError("amount has too many digits") from None
        if quantized != value:
            raise ValueError("amount has more than two decimal places")
        return value

    @field_validator("created_at", mode="before")
    @classmethod
    def _parse_created_at(cls, value: Any) -> Any:
        if isinstance(value, (str, datetime)):
            return parse_timestamp(value)
        return value

    @field_validator("created_at")
    @classmethod
    def _check_created_at(cls, value: datetime) -> datetime:
        # Raises on sub-second precision
        format_timestamp_canonical(value)
        return value

    @field_validator("anonymous", mode="before")
    @classmethod
    def _null_anonymous(cls, value: Any) -> Any:
        return False if value is None else value

    @property
    def display_name(self) -> str | None:
        """Donor name as it may be shown publicly."""
        if self.anonymous or not self.donor_name:
            return None
        return self.donor_name


class LeafAssignment(BaseModel):
    """
    A donation's position in a closed batch.

    Written once at batch close and never reassigned.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    donation_id: str = Field(..., min_length=1)
    batch_id: str = Field(..., min_length=1)
    leaf_index: int = Field(..., ge=0)
    leaf_hash: str = Field(
        ...,
        pattern=r"^[0-9a-f]{64}$",
        description="SHA-256 of the canonical serialization (lowercase hex)",
    )
