"""
API Response Models

Pydantic models for API response serialization.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from core.schemas import AnchorBatch, AnchorException, FinalityStatus


class HealthResponse(BaseModel):
    """Response for GET /health endpoint."""

    ok: bool = True
    service: str = "givegood-anchor-api"
    version: str = "v1"
    codec_version: str = "v1"
    ledger_mode: Optional[str] = None
    network: Optional[str] = None


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] = Field(default_factory=dict)
    retryable: bool = Field(default=False)

    @classmethod
    def from_exception(cls, exc: AnchorException) -> "ErrorDetail":
        return cls(
            code=exc.code,
            message=exc.message,
            details=exc.details,
            retryable=exc.retryable,
        )


class ErrorResponse(BaseModel):
    """Standard error response."""

    ok: bool = False
    error: ErrorDetail = Field(..., description="Error details")


class BatchListResponse(BaseModel):
    """Response for GET /batches."""

    ok: bool = True
    count: int = 0
    batches: list[AnchorBatch] = Field(default_factory=list)


class ExcludedDonationInfo(BaseModel):
    """A donation the codec rejected at close."""

    position: int
    donation_id: Optional[str] = None
    error: ErrorDetail


class CloseBatchResponse(BaseModel):
    """Response for POST /batches/{batch_id}/close."""

    ok: bool = True
    batch: AnchorBatch
    excluded: list[ExcludedDonationInfo] = Field(default_factory=list)
    submitted: bool = False
    submit_error: Optional[ErrorDetail] = None


class FinalityResponse(BaseModel):
    """Response for POST /batches/{batch_id}/finality."""

    ok: bool = True
    batch_id: str
    batch_status: str
    state: str = Field(..., description="pending, confirmed or failed")
    slot: Optional[int] = None
    timestamp: Optional[datetime] = None
    fee: Optional[int] = None
    reason: Optional[str] = None

    @classmethod
    def from_status(cls, batch: AnchorBatch, status: FinalityStatus) -> "FinalityResponse":
        return cls(
            batch_id=batch.id,
            batch_status=batch.status.value,
            state=status.state,
            slot=getattr(status, "slot", None),
            timestamp=getattr(status, "timestamp", None),
            fee=getattr(status, "fee", None),
            reason=getattr(status, "reason", None),
        )


class RetryInfoResponse(BaseModel):
    """Response for GET /batches/{batch_id}/retry."""

    ok: bool = True
    batch_id: str
    status: str
    retry_count: int
    max_retries: int
    remaining_attempts: int
    can_retry: bool
    next_delay_ms: Optional[int] = None
    last_error: Optional[str] = None
    onchain_tx_signature: Optional[str] = None


class ResumeItem(BaseModel):
    batch_id: str
    action: str
    status: str
    error: Optional[ErrorDetail] = None


class ResumeResponse(BaseModel):
    """Response for POST /batches/resume."""

    ok: bool = True
    batches: list[ResumeItem] = Field(default_factory=list)


class DonationCreatedResponse(BaseModel):
    """Response for POST /donations."""

    ok: bool = True
    donation_id: str
    leaf_hash: str = Field(..., description="Leaf hash the donation will carry once batched")


class WalletStatusResponse(BaseModel):
    """Response for GET /wallet/status."""

    ready: bool
    network: Optional[str] = None
    account: Optional[str] = None
    balance: Optional[int] = None
    min_balance: Optional[int] = None
    message: str = ""
