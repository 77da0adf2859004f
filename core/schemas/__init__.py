"""
Schemas
File: __init__.py

Purpose: Export the public API for the schemas module.
This is the main entry point for other modules to import schema definitions.
"""

# Version constants
from .versioning import (
    CODEC_VERSION,
    SUPPORTED_CODEC_VERSIONS,
    CodecVersion,
    UnsupportedCodecVersionError,
    assert_supported_codec_version,
)

# Canonical serialization API
from .canonical import (
    CANONICAL_JSON_SEPARATORS,
    CANONICAL_TIMESTAMP_FORMAT,
    canonicalize_value,
    dumps_canonical,
    ensure_utc,
    format_timestamp_canonical,
    parse_timestamp,
)

# Error models and exceptions
from .errors import (
    AnchorError,
    AnchorException,
    BatchConflictError,
    BatchNotFoundError,
    CodecError,
    DonationNotBatchedError,
    DonationNotFoundError,
    EmptyBatchError,
    ErrorCodes,
    FinalityTimeoutError,
    InvalidTransitionError,
    ProofMismatchError,
    SubmissionError,
    WalletUnfundedError,
)

# Domain models
from .donation import DonationRecord, LeafAssignment
from .batch import (
    ALLOWED_TRANSITIONS,
    AnchorBatch,
    BatchEvent,
    BatchStatus,
    FinalityConfirmed,
    FinalityFailed,
    FinalityPending,
    FinalityStatus,
    can_transition,
)
from .verification import (
    DonationVerification,
    ProofCheck,
    VerificationPayload,
)

__all__ = [
    # Versioning
    "CODEC_VERSION",
    "SUPPORTED_CODEC_VERSIONS",
    "CodecVersion",
    "UnsupportedCodecVersionError",
    "assert_supported_codec_version",
    # Canonical
    "CANONICAL_JSON_SEPARATORS",
    "CANONICAL_TIMESTAMP_FORMAT",
    "canonicalize_value",
    "dumps_canonical",
    "ensure_utc",
    "format_timestamp_canonical",
    "parse_timestamp",
    # Errors
    "AnchorError",
    "AnchorException",
    "BatchConflictError",
    "BatchNotFoundError",
    "CodecError",
    "DonationNotBatchedError",
    "DonationNotFoundError",
    "EmptyBatchError",
    "ErrorCodes",
    "FinalityTimeoutError",
    "InvalidTransitionError",
    "ProofMismatchError",
    "SubmissionError",
    "WalletUnfundedError",
    # Donations
    "DonationRecord",
    "LeafAssignment",
    # Batches
    "ALLOWED_TRANSITIONS",
    "AnchorBatch",
    "BatchEvent",
    "BatchStatus",
    "FinalityConfirmed",
    "FinalityFailed",
    "FinalityPending",
    "FinalityStatus",
    "can_transition",
    # Verification
    "DonationVerification",
    "ProofCheck",
    "VerificationPayload",
]
