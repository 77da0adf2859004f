"""
Verify Routes

Stateless proof checks for auditors. Nothing here reads the store: the
caller supplies the leaf (or the donation record), the proof and the root.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter

from api.models.requests import DonationProofVerifyRequest, ProofVerifyRequest
from core.codec import leaf_hash_hex
from core.schemas import CodecError, ErrorCodes, ProofCheck, ProofMismatchError
from orchestrator.verification import check_proof


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/verify", tags=["verification"])


@router.post("/proof", response_model=ProofCheck)
async def verify_proof(request: ProofVerifyRequest) -> ProofCheck:
    """
    Check that leaf_hash is included under merkle_root via proof.

    A failed check is a normal response with valid=false.
    """
    return check_proof(request.proof, request.leaf_hash, request.merkle_root)


@router.post("/donation", response_model=ProofCheck)
async def verify_donation_record(request: DonationProofVerifyRequest) -> ProofCheck:
    """Hash a published donation record, then check its proof."""
    try:
        leaf = leaf_hash_hex(request.donation)
    except CodecError as e:
        return ProofCheck(
            valid=False,
            leaf_hash="",
            merkle_root=request.merkle_root,
            proof_length=len(request.proof),
            error=ProofMismatchError(
                code=ErrorCodes.CODEC_ERROR,
                message=e.message,
                merkle_root=request.merkle_root,
                details=e.details,
            ),
        )
    return check_proof(request.proof, leaf, request.merkle_root)
