"""
Schemas
File: verification.py

Purpose: Payloads handed to independent auditors and the results of
verifying a donation's inclusion in an anchored batch.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .batch import BatchStatus
from .errors import ProofMismatchError


HEX_DIGEST_PATTERN = r"^[0-9a-f]{64}$"


class VerificationPayload(BaseModel):
    """
    Everything an auditor needs to check one donation independently.

    Values are passed through unmodified from the codec, builder and
    proof engine.
    """

    model_config = ConfigDict(extra="forbid")

    donation_id: str = Field(..., min_length=1)
    leaf_hash: str = Field(..., pattern=HEX_DIGEST_PATTERN)
    leaf_index: int = Field(..., ge=0)
    batch_id: str = Field(..., min_length=1)
    batch_status: BatchStatus
    merkle_root: str = Field(..., pattern=HEX_DIGEST_PATTERN)
    proof: list[str] = Field(
        default_factory=list,
        description="Sibling digests from leaf to root (hex)",
    )
    onchain_tx_signature: str | None = Field(default=None)
    explorer_url: str | None = Field(default=None)


class ProofCheck(BaseModel):
    """Inputs and outcome of a bare proof verification."""

    model_config = ConfigDict(extra="forbid")

    valid: bool
    leaf_hash: str
    merkle_root: str
    proof_length: int = Field(default=0, ge=0)
    error: ProofMismatchError | None = None


class DonationVerification(BaseModel):
    """
    Result of re-deriving a stored donation's leaf hash and checking its proof.

    valid is False both when the record no longer hashes to the stored
    leaf (tampering) and when the proof does not lead to the root.
    """

    model_config = ConfigDict(extra="forbid")

    valid: bool
    donation_id: str
    batch_id: str | None = None
    batch_status: BatchStatus | None = None
    leaf_index: int | None = None
    leaf_hash: str | None = Field(default=None, description="Hash recomputed from the record")
    stored_leaf_hash: str | None = None
    merkle_root: str | None = None
    proof_length: int = 0
    onchain_tx_signature: str | None = None
    error: ProofMismatchError | None = None
    details: dict[str, Any] = Field(default_factory=dict)
