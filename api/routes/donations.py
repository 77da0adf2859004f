"""
Donation Routes

Donation intake for operators and the public verification surface.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends

from api.deps import get_engine
from api.errors import InvalidRequestError
from api.models.responses import DonationCreatedResponse
from core.codec import coerce_donation, leaf_hash_hex
from core.schemas import DonationVerification, VerificationPayload
from orchestrator.engine import AnchorEngine


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/donations", tags=["donations"])


@router.post("", response_model=DonationCreatedResponse, status_code=201)
def add_donation(
    donation: dict[str, Any] = Body(..., description="Donation record"),
    engine: AnchorEngine = Depends(get_engine),
) -> DonationCreatedResponse:
    """Validate a donation and queue it for the next batch."""
    record = coerce_donation(donation)
    try:
        engine.store.add_donation(record)
    except ValueError as e:
        raise InvalidRequestError(str(e), details={"donation_id": record.id}) from e
    return DonationCreatedResponse(donation_id=record.id, leaf_hash=leaf_hash_hex(record))


@router.get("/{donation_id}/proof", response_model=VerificationPayload)
def get_proof(donation_id: str, engine: AnchorEngine = Depends(get_engine)) -> VerificationPayload:
    """
    Inclusion payload for independent verification.

    Available from the moment the batch is sealed, including batches that
    are still anchoring or have failed.
    """
    return engine.verifier.get_proof_payload(donation_id)


@router.get("/{donation_id}/verify", response_model=DonationVerification)
def verify_donation(
    donation_id: str,
    engine: AnchorEngine = Depends(get_engine),
) -> DonationVerification:
    """Recompute the donation's leaf hash and check it against its batch root."""
    return engine.verifier.verify_donation(donation_id)
