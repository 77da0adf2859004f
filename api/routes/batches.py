"""
Batch Routes

Drive anchor batches through their lifecycle. Handlers that may reach
the ledger are plain functions so FastAPI runs them in its threadpool.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.deps import get_engine
from api.models.requests import (
    AwaitFinalityRequest,
    CloseBatchRequest,
    FailBatchRequest,
    OpenBatchRequest,
)
from api.models.responses import (
    BatchListResponse,
    CloseBatchResponse,
    ErrorDetail,
    ExcludedDonationInfo,
    FinalityResponse,
    ResumeItem,
    ResumeResponse,
    RetryInfoResponse,
)
from core.schemas import AnchorBatch, BatchEvent, BatchStatus
from orchestrator.engine import AnchorEngine


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/batches", tags=["batches"])


@router.post("", response_model=AnchorBatch, status_code=201)
def open_batch(
    request: Optional[OpenBatchRequest] = None,
    engine: AnchorEngine = Depends(get_engine),
) -> AnchorBatch:
    """Create an empty pending batch."""
    batch_id = request.batch_id if request else None
    return engine.controller.open_batch(batch_id)


@router.get("", response_model=BatchListResponse)
def list_batches(
    status: Optional[BatchStatus] = Query(default=None, description="Filter by status"),
    engine: AnchorEngine = Depends(get_engine),
) -> BatchListResponse:
    batches = engine.controller.list_batches(status)
    return BatchListResponse(count=len(batches), batches=batches)


@router.post("/resume", response_model=ResumeResponse)
def resume_batches(engine: AnchorEngine = Depends(get_engine)) -> ResumeResponse:
    """Poll or resubmit every batch left in anchoring."""
    outcomes = engine.controller.resume_anchoring()
    return ResumeResponse(
        ok=all(o.error is None for o in outcomes),
        batches=[
            ResumeItem(
                batch_id=o.batch_id,
                action=o.action,
                status=o.status.value,
                error=ErrorDetail.from_exception(o.error) if o.error else None,
            )
            for o in outcomes
        ],
    )


@router.get("/{batch_id}", response_model=AnchorBatch)
def get_batch(batch_id: str, engine: AnchorEngine = Depends(get_engine)) -> AnchorBatch:
    return engine.controller.get_batch(batch_id)


@router.get("/{batch_id}/events", response_model=list[BatchEvent])
def list_events(batch_id: str, engine: AnchorEngine = Depends(get_engine)) -> list[BatchEvent]:
    """Append-only history of a batch."""
    return engine.controller.list_events(batch_id)


@router.post("/{batch_id}/close", response_model=CloseBatchResponse)
def close_batch(
    batch_id: str,
    request: Optional[CloseBatchRequest] = None,
    engine: AnchorEngine = Depends(get_engine),
) -> CloseBatchResponse:
    """
    Seal a pending batch over the unassigned donations.

    Malformed donations are excluded and listed. A submission failure
    after sealing is reported in submit_error; the batch stays anchoring.
    """
    submit = request.submit if request else True
    report = engine.controller.close_batch(batch_id, submit=submit)
    return CloseBatchResponse(
        ok=report.submit_error is None,
        batch=report.batch,
        excluded=[
            ExcludedDonationInfo(
                position=e.position,
                donation_id=e.donation_id,
                error=ErrorDetail.from_exception(e.error),
            )
            for e in report.excluded
        ],
        submitted=report.submitted,
        submit_error=ErrorDetail.from_exception(report.submit_error) if report.submit_error else None,
    )


@router.post("/{batch_id}/submit", response_model=AnchorBatch)
def submit_batch(batch_id: str, engine: AnchorEngine = Depends(get_engine)) -> AnchorBatch:
    """Submit (or resubmit) the stored root of an anchoring batch."""
    return engine.controller.submit_batch(batch_id)


@router.post("/{batch_id}/finality", response_model=FinalityResponse)
def check_finality(
    batch_id: str,
    request: Optional[AwaitFinalityRequest] = None,
    engine: AnchorEngine = Depends(get_engine),
) -> FinalityResponse:
    """Poll finality once, or until final when wait is set."""
    if request is not None and request.wait:
        status = engine.controller.await_finality(batch_id, timeout_s=request.timeout_s)
    else:
        status = engine.controller.poll_finality(batch_id)
    return FinalityResponse.from_status(engine.controller.get_batch(batch_id), status)


@router.post("/{batch_id}/fail", response_model=AnchorBatch)
def fail_batch(
    batch_id: str,
    request: FailBatchRequest,
    engine: AnchorEngine = Depends(get_engine),
) -> AnchorBatch:
    """Operator remediation: mark an anchoring batch failed."""
    logger.warning(f"Operator failing batch {batch_id}: {request.reason}")
    return engine.controller.fail_batch(batch_id, request.reason)


@router.get("/{batch_id}/retry", response_model=RetryInfoResponse)
def retry_info(batch_id: str, engine: AnchorEngine = Depends(get_engine)) -> RetryInfoResponse:
    """Retry count, remaining attempts and next backoff delay."""
    info = engine.controller.retry_info(batch_id)
    return RetryInfoResponse(**info.to_dict())
