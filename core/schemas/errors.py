"""
Schemas
File: errors.py

Purpose: Standard error taxonomy for the anchoring engine.
Defines both Pydantic models for structured error communication
and Python exceptions for control flow.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Error Codes (Machine-Readable Constants)
# =============================================================================

class ErrorCodes:
    """Stable machine-readable error codes used across the engine."""

    # Codec Errors
    CODEC_ERROR = "CODEC_ERROR"

    # Batch Errors
    EMPTY_BATCH = "EMPTY_BATCH"
    BATCH_NOT_FOUND = "BATCH_NOT_FOUND"
    BATCH_CONFLICT = "BATCH_CONFLICT"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    DONATION_NOT_FOUND = "DONATION_NOT_FOUND"
    DONATION_NOT_BATCHED = "DONATION_NOT_BATCHED"

    # Ledger Errors
    SUBMISSION_ERROR = "SUBMISSION_ERROR"
    WALLET_UNFUNDED = "WALLET_UNFUNDED"
    FINALITY_TIMEOUT = "FINALITY_TIMEOUT"
    RETRY_LIMIT_EXCEEDED = "RETRY_LIMIT_EXCEEDED"

    # Verification Outcomes
    PROOF_MISMATCH = "PROOF_MISMATCH"
    LEAF_HASH_MISMATCH = "LEAF_HASH_MISMATCH"
    ROOT_MISMATCH = "ROOT_MISMATCH"


# =============================================================================
# Pydantic Error Models (Structured Communication)
# =============================================================================

class AnchorError(BaseModel):
    """
    Base error model for structured error communication.

    Used where an outcome must be reported without raising, e.g. in
    verification responses and batch diagnostics.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=False,
        validate_assignment=True,
    )

    code: str = Field(
        ...,
        description="Stable machine-readable error code",
        examples=[ErrorCodes.CODEC_ERROR],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional structured details about the error",
    )
    retryable: bool = Field(
        default=False,
        description="Whether the operation can be retried",
    )

    def to_exception(self) -> "AnchorException":
        """Convert this error model to a raised exception."""
        return AnchorException(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )


class ProofMismatchError(AnchorError):
    """
    Verification did not succeed.

    This is an expected outcome of verification, carried in results and
    never raised.
    """

    code: str = Field(default=ErrorCodes.PROOF_MISMATCH)
    leaf_hash: str | None = Field(
        default=None,
        description="Leaf hash that was checked (hex)",
    )
    merkle_root: str | None = Field(
        default=None,
        description="Root the proof was checked against (hex)",
    )


# =============================================================================
# Python Exceptions (Control Flow)
# =============================================================================

class AnchorException(Exception):
    """
    Base exception for all anchoring engine errors.

    This exception carries structured error information and can be
    converted to/from AnchorError models.
    """

    def __init__(
        self,
        message: str,
        code: str = "ANCHOR_ERROR",
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.retryable = retryable

    def to_error_model(self) -> AnchorError:
        """Convert this exception to an AnchorError model."""
        return AnchorError(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class CodecError(AnchorException):
    """A donation record is malformed or missing a required field."""

    def __init__(
        self,
        message: str,
        donation_id: str | None = None,
        field_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if donation_id:
            full_details["donation_id"] = donation_id
        if field_path:
            full_details["field_path"] = field_path
        super().__init__(
            message=message,
            code=ErrorCodes.CODEC_ERROR,
            details=full_details,
            retryable=False,
        )
        self.donation_id = donation_id


class EmptyBatchError(AnchorException):
    """Close attempted with no donations; no root is defined for an empty set."""

    def __init__(
        self,
        message: str = "Cannot build a Merkle tree with zero leaves",
        batch_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if batch_id:
            full_details["batch_id"] = batch_id
        super().__init__(
            message=message,
            code=ErrorCodes.EMPTY_BATCH,
            details=full_details,
            retryable=False,
        )


class BatchNotFoundError(AnchorException):
    """No batch exists with the requested id."""

    def __init__(self, batch_id: str) -> None:
        super().__init__(
            message=f"Batch not found: {batch_id}",
            code=ErrorCodes.BATCH_NOT_FOUND,
            details={"batch_id": batch_id},
            retryable=False,
        )


class DonationNotFoundError(AnchorException):
    """No donation exists with the requested id."""

    def __init__(self, donation_id: str) -> None:
        super().__init__(
            message=f"Donation not found: {donation_id}",
            code=ErrorCodes.DONATION_NOT_FOUND,
            details={"donation_id": donation_id},
            retryable=False,
        )


class DonationNotBatchedError(AnchorException):
    """The donation exists but has not been assigned to a closed batch yet."""

    def __init__(self, donation_id: str) -> None:
        super().__init__(
            message=f"Donation {donation_id} is not yet part of a closed batch",
            code=ErrorCodes.DONATION_NOT_BATCHED,
            details={"donation_id": donation_id},
            retryable=True,
        )


class BatchConflictError(AnchorException):
    """A compare-and-set on batch state lost a race or hit an immutable field."""

    def __init__(
        self,
        message: str,
        batch_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if batch_id:
            full_details["batch_id"] = batch_id
        super().__init__(
            message=message,
            code=ErrorCodes.BATCH_CONFLICT,
            details=full_details,
            retryable=False,
        )


class InvalidTransitionError(AnchorException):
    """A requested status change is not an edge of the batch state machine."""

    def __init__(
        self,
        batch_id: str,
        from_status: str,
        to_status: str,
        reason: str | None = None,
    ) -> None:
        message = f"Invalid transition for batch {batch_id}: {from_status} -> {to_status}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(
            message=message,
            code=ErrorCodes.INVALID_TRANSITION,
            details={
                "batch_id": batch_id,
                "from_status": from_status,
                "to_status": to_status,
            },
            retryable=False,
        )


class SubmissionError(AnchorException):
    """
    The ledger rejected the submission or the network call failed.

    The batch stays in anchoring with its root unchanged; retry by
    resubmitting the same root.
    """

    def __init__(
        self,
        message: str,
        batch_id: str | None = None,
        details: dict[str, Any] | None = None,
        code: str = ErrorCodes.SUBMISSION_ERROR,
        retryable: bool = True,
    ) -> None:
        full_details = details or {}
        if batch_id:
            full_details["batch_id"] = batch_id
        super().__init__(
            message=message,
            code=code,
            details=full_details,
            retryable=retryable,
        )


class WalletUnfundedError(AnchorException):
    """The anchoring wallet cannot pay for a transaction; nothing was submitted."""

    def __init__(
        self,
        message: str = "Anchor wallet is not funded",
        batch_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if batch_id:
            full_details["batch_id"] = batch_id
        super().__init__(
            message=message,
            code=ErrorCodes.WALLET_UNFUNDED,
            details=full_details,
            retryable=True,
        )


class FinalityTimeoutError(AnchorException):
    """No finality was observed within the bounded window."""

    def __init__(
        self,
        batch_id: str,
        tx_signature: str | None,
        timeout_s: float,
    ) -> None:
        super().__init__(
            message=(
                f"Transaction for batch {batch_id} not final after {timeout_s:g}s"
            ),
            code=ErrorCodes.FINALITY_TIMEOUT,
            details={
                "batch_id": batch_id,
                "tx_signature": tx_signature,
                "timeout_s": timeout_s,
            },
            retryable=True,
        )
