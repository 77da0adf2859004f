"""
Verification Service

Public verification surface. For a donation id it returns everything an
auditor needs to re-run the proof check on their own, and can run that
check itself:

1. Recompute the leaf hash from the stored donation record and compare it
   with the leaf hash assigned at close (detects edits after the fact).
2. Rebuild the batch tree from the stored, ordered leaf hashes and derive
   the inclusion proof.
3. Fold the leaf with the proof and compare against the stored root.

Payloads are available as soon as a batch is sealed, so in-flight
(anchoring) and failed batches can still be checked. Nothing here takes a
lock or writes to the store.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from core.codec import leaf_hash_hex
from core.crypto.hashing import from_hex
from core.ledger.base import DonationStore, LedgerClient
from core.merkle import build_merkle_proof, build_merkle_tree, verify_hex
from core.schemas import (
    BatchNotFoundError,
    CodecError,
    DonationNotBatchedError,
    DonationNotFoundError,
    DonationVerification,
    ErrorCodes,
    ProofCheck,
    ProofMismatchError,
    VerificationPayload,
)


logger = logging.getLogger(__name__)


def check_proof(proof: Sequence[str], leaf_hash: str, merkle_root: str) -> ProofCheck:
    """Verify a hex proof and describe the outcome; never raises."""
    valid = verify_hex(proof, leaf_hash, merkle_root)
    error = None
    if not valid:
        error = ProofMismatchError(
            message="Proof does not connect the leaf hash to the Merkle root",
            leaf_hash=leaf_hash,
            merkle_root=merkle_root,
        )
    return ProofCheck(
        valid=valid,
        leaf_hash=leaf_hash,
        merkle_root=merkle_root,
        proof_length=len(proof) if isinstance(proof, (list, tuple)) else 0,
        error=error,
    )


class VerificationService:
    """
    Builds verification payloads and verifies stored donations.

    Args:
        store: Donation and batch persistence
        ledger: Used only to render explorer links
    """

    def __init__(self, store: DonationStore, ledger: Optional[LedgerClient] = None) -> None:
        self.store = store
        self.ledger = ledger

    def get_proof_payload(self, donation_id: str) -> VerificationPayload:
        """
        Inclusion payload for one donation.

        Raises:
            DonationNotFoundError: Unknown donation
            DonationNotBatchedError: Donation not yet in a closed batch
            BatchNotFoundError: Assignment points at a missing batch
        """
        assignment = self.store.get_assignment(donation_id)
        if assignment is None:
            if self.store.get_donation(donation_id) is None:
                raise DonationNotFoundError(donation_id)
            raise DonationNotBatchedError(donation_id)

        batch = self.store.get_batch(assignment.batch_id)
        if batch is None:
            raise BatchNotFoundError(assignment.batch_id)

        leaves = [from_hex(a.leaf_hash) for a in self.store.list_assignments(batch.id)]
        tree = build_merkle_tree(leaves)
        if tree.root_hex != batch.merkle_root:
            logger.warning(
                f"Batch {batch.id}: stored leaves rebuild to {tree.root_hex[:16]}..., "
                f"recorded root is {(batch.merkle_root or '')[:16]}..."
            )
        proof = build_merkle_proof(tree, index=assignment.leaf_index)

        explorer_url = None
        if batch.onchain_tx_signature and self.ledger is not None:
            explorer_url = self.ledger.explorer_url(batch.onchain_tx_signature)

        return VerificationPayload(
            donation_id=donation_id,
            leaf_hash=assignment.leaf_hash,
            leaf_index=assignment.leaf_index,
            batch_id=batch.id,
            batch_status=batch.status,
            merkle_root=batch.merkle_root,
            proof=proof.siblings_hex(),
            onchain_tx_signature=batch.onchain_tx_signature,
            explorer_url=explorer_url,
        )

    def verify_donation(self, donation_id: str) -> DonationVerification:
        """
        Re-derive a donation's leaf hash and check it against its batch root.

        A mismatch is reported in the result, not raised.

        Raises:
            DonationNotFoundError: Unknown donation
            DonationNotBatchedError: Donation not yet in a closed batch
        """
        payload = self.get_proof_payload(donation_id)
        row = self.store.get_donation(donation_id)

        result = DonationVerification(
            valid=False,
            donation_id=donation_id,
            batch_id=payload.batch_id,
            batch_status=payload.batch_status,
            leaf_index=payload.leaf_index,
            stored_leaf_hash=payload.leaf_hash,
            merkle_root=payload.merkle_root,
            proof_length=len(payload.proof),
            onchain_tx_signature=payload.onchain_tx_signature,
        )

        try:
            recomputed = leaf_hash_hex(row)
        except CodecError as e:
            result.error = ProofMismatchError(
                code=ErrorCodes.LEAF_HASH_MISMATCH,
                message=f"Stored donation no longer serializes: {e.message}",
                merkle_root=payload.merkle_root,
                details=e.details,
            )
            return result

        result.leaf_hash = recomputed
        if recomputed != payload.leaf_hash:
            result.error = ProofMismatchError(
                code=ErrorCodes.LEAF_HASH_MISMATCH,
                message="Donation record does not match the leaf hash recorded at batch close",
                leaf_hash=recomputed,
                merkle_root=payload.merkle_root,
            )
            logger.warning(f"Donation {donation_id}: leaf hash mismatch, record changed after close")
            return result

        check = check_proof(payload.proof, recomputed, payload.merkle_root)
        if not check.valid:
            result.error = check.error.model_copy(update={"code": ErrorCodes.ROOT_MISMATCH})
            logger.warning(f"Donation {donation_id}: proof does not reach batch root")
            return result

        result.valid = True
        return result
