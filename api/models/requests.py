"""
API Request Models

Pydantic models for API request validation.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class OpenBatchRequest(BaseModel):
    """Request body for POST /batches."""

    batch_id: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=128,
        description="Batch id; a UUID is generated when omitted",
    )


class CloseBatchRequest(BaseModel):
    """Request body for POST /batches/{batch_id}/close."""

    submit: bool = Field(
        default=True,
        description="Submit the root to the ledger right after sealing",
    )


class AwaitFinalityRequest(BaseModel):
    """Request body for POST /batches/{batch_id}/finality."""

    wait: bool = Field(
        default=False,
        description="Poll until final instead of polling once",
    )
    timeout_s: Optional[float] = Field(
        default=None,
        gt=0,
        le=600,
        description="Polling window when wait is true (defaults to config)",
    )


class FailBatchRequest(BaseModel):
    """Request body for POST /batches/{batch_id}/fail."""

    reason: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="Operator-supplied failure reason",
    )


class ProofVerifyRequest(BaseModel):
    """Request body for POST /verify/proof."""

    proof: list[str] = Field(
        default_factory=list,
        description="Sibling digests from leaf to root (hex)",
    )
    leaf_hash: str = Field(..., description="Leaf hash (hex)")
    merkle_root: str = Field(..., description="Claimed Merkle root (hex)")


class DonationProofVerifyRequest(BaseModel):
    """Request body for POST /verify/donation."""

    donation: dict[str, Any] = Field(
        ...,
        description="Donation record as published to the auditor",
    )
    proof: list[str] = Field(default_factory=list)
    merkle_root: str = Field(...)
