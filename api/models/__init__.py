"""API request and response models."""

from api.models.requests import (
    AwaitFinalityRequest,
    CloseBatchRequest,
    DonationProofVerifyRequest,
    FailBatchRequest,
    OpenBatchRequest,
    ProofVerifyRequest,
)
from api.models.responses import (
    BatchListResponse,
    CloseBatchResponse,
    DonationCreatedResponse,
    ErrorDetail,
    ErrorResponse,
    ExcludedDonationInfo,
    FinalityResponse,
    HealthResponse,
    ResumeItem,
    ResumeResponse,
    RetryInfoResponse,
    WalletStatusResponse,
)

__all__ = [
    "AwaitFinalityRequest",
    "CloseBatchRequest",
    "DonationProofVerifyRequest",
    "FailBatchRequest",
    "OpenBatchRequest",
    "ProofVerifyRequest",
    "BatchListResponse",
    "CloseBatchResponse",
    "DonationCreatedResponse",
    "ErrorDetail",
    "ErrorResponse",
    "ExcludedDonationInfo",
    "FinalityResponse",
    "HealthResponse",
    "ResumeItem",
    "ResumeResponse",
    "RetryInfoResponse",
    "WalletStatusResponse",
]
