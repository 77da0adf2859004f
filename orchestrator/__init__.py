"""
Batch Anchoring Orchestration

Drives anchor batches through their lifecycle and answers verification
requests against sealed batches.

Public API:
- BatchLifecycleController: open, close, submit, poll and fail batches
- CloseReport / ExcludedDonation / ResumeOutcome: operation results
- RetryPolicy / RetryInfo: bounded resubmission backoff
- VerificationService: proof payloads and donation verification
- AnchorEngine / create_engine: wiring from RuntimeConfig
"""

from orchestrator.lifecycle import (
    BatchLifecycleController,
    CloseReport,
    ExcludedDonation,
    ResumeOutcome,
)
from orchestrator.retry import RetryInfo, RetryPolicy
from orchestrator.verification import VerificationService, check_proof
from orchestrator.engine import AnchorEngine, create_engine, create_test_engine


__all__ = [
    # Lifecycle
    "BatchLifecycleController",
    "CloseReport",
    "ExcludedDonation",
    "ResumeOutcome",
    # Retry
    "RetryInfo",
    "RetryPolicy",
    # Verification
    "VerificationService",
    "check_proof",
    # Wiring
    "AnchorEngine",
    "create_engine",
    "create_test_engine",
]
