"""
Schemas
File: batch.py

Purpose: Anchor batch records, the batch state machine edges, the
append-only batch event log and ledger finality results.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .versioning import CODEC_VERSION


class BatchStatus(str, Enum):
    """Lifecycle states of an anchor batch."""
    PENDING = "pending"
    ANCHORING = "anchoring"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (BatchStatus.CONFIRMED, BatchStatus.FAILED)


# The only edges of the state machine. Terminal states have none.
ALLOWED_TRANSITIONS: dict[BatchStatus, frozenset[BatchStatus]] = {
    BatchStatus.PENDING: frozenset({BatchStatus.ANCHORING}),
    BatchStatus.ANCHORING: frozenset({BatchStatus.CONFIRMED, BatchStatus.FAILED}),
    BatchStatus.CONFIRMED: frozenset(),
    BatchStatus.FAILED: frozenset(),
}


def can_transition(from_status: BatchStatus, to_status: BatchStatus) -> bool:
    """Check whether from_status -> to_status is an edge of the state machine."""
    return to_status in ALLOWED_TRANSITIONS[from_status]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnchorBatch(BaseModel):
    """
    A fixed, ordered set of donations whose root is anchored on-chain.

    The donation id order is leaf order. merkle_root is set exactly once,
    at close, together with the move to anchoring.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: str = Field(..., min_length=1)
    status: BatchStatus = Field(default=BatchStatus.PENDING)
    donation_ids: list[str] = Field(default_factory=list)
    donation_count: int = Field(default=0, ge=0)
    total_amount: Decimal = Field(default=Decimal("0.00"))
    merkle_root: str | None = Field(default=None, pattern=r"^[0-9a-f]{64}$")
    tree_height: int = Field(default=0, ge=0)
    codec_version: str = Field(default=CODEC_VERSION)
    batch_start_time: datetime | None = Field(default=None)
    batch_end_time: datetime | None = Field(default=None)

    onchain_tx_signature: str | None = Field(default=None)
    onchain_slot: int | None = Field(default=None, ge=0)
    onchain_timestamp: datetime | None = Field(default=None)
    onchain_fee: int | None = Field(default=None, ge=0)

    retry_count: int = Field(default=0, ge=0)
    error_message: str | None = Field(default=None)

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_sealed(self) -> bool:
        """True once the donation set and root are frozen."""
        return self.merkle_root is not None

    @property
    def is_submitted(self) -> bool:
        return self.onchain_tx_signature is not None


class BatchEvent(BaseModel):
    """One append-only entry in a batch's history."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    batch_id: str
    sequence: int = Field(..., ge=0)
    kind: Literal["created", "sealed", "submitted", "submit_failed", "status", "note"]
    from_status: BatchStatus | None = None
    to_status: BatchStatus | None = None
    at: datetime = Field(default_factory=_utcnow)
    details: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Ledger finality results
# =============================================================================

class FinalityPending(BaseModel):
    """Transaction is known but not yet final."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    state: Literal["pending"] = "pending"


class FinalityConfirmed(BaseModel):
    """Transaction reached finality."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    state: Literal["confirmed"] = "confirmed"
    slot: int = Field(..., ge=0)
    timestamp: datetime | None = None
    fee: int | None = Field(default=None, ge=0)


class FinalityFailed(BaseModel):
    """Transaction was rejected or dropped by the ledger."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    state: Literal["failed"] = "failed"
    reason: str


FinalityStatus = Union[FinalityPending, FinalityConfirmed, FinalityFailed]
