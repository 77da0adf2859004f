"""
Verification Service Unit Tests
Tests for orchestrator/verification.py

1. Proof payloads for every donation of a batch verify offline
2. Tampered donation rows are detected
3. Unknown and unbatched donations
4. Payloads for anchoring and failed batches
"""
import pytest

from core.codec import leaf_hash_hex
from core.crypto.hashing import sha256, to_hex
from core.ledger import FakeLedger
from core.merkle import MerkleVerifier, verify_hex
from core.schemas import (
    BatchStatus,
    DonationNotBatchedError,
    DonationNotFoundError,
    ErrorCodes,
)
from orchestrator.verification import VerificationService, check_proof

from fixtures.common import make_controller, make_donation, make_donations, make_store


@pytest.fixture
def anchored():
    """A confirmed batch over seven donations."""
    rows = make_donations(7)
    store = make_store(rows)
    ledger = FakeLedger(explorer_base_url="https://explorer.example")
    controller = make_controller(store=store, ledger=ledger)
    batch = controller.open_batch()
    controller.close_batch(batch.id)
    controller.poll_finality(batch.id)
    return rows, store, ledger, VerificationService(store, ledger), controller.get_batch(batch.id)


class TestProofPayload:

    def test_every_donation_verifies(self, anchored):
        rows, _, _, verifier, batch = anchored
        for index, row in enumerate(rows):
            payload = verifier.get_proof_payload(row["id"])
            assert payload.leaf_index == index
            assert payload.leaf_hash == leaf_hash_hex(row)
            assert payload.merkle_root == batch.merkle_root
            assert verify_hex(payload.proof, payload.leaf_hash, payload.merkle_root)
            assert MerkleVerifier.verify_payload(payload)

    def test_payload_carries_anchor(self, anchored):
        rows, _, _, verifier, batch = anchored
        payload = verifier.get_proof_payload(rows[0]["id"])
        assert payload.batch_id == batch.id
        assert payload.batch_status == BatchStatus.CONFIRMED
        assert payload.onchain_tx_signature == batch.onchain_tx_signature
        assert payload.explorer_url == f"https://explorer.example/tx/{batch.onchain_tx_signature}"

    def test_proof_length(self, anchored):
        rows, _, _, verifier, batch = anchored
        assert len(verifier.get_proof_payload(rows[6]["id"]).proof) == batch.tree_height - 1

    def test_unknown_donation(self, anchored):
        _, _, _, verifier, _ = anchored
        with pytest.raises(DonationNotFoundError):
            verifier.get_proof_payload("nope")

    def test_unbatched_donation(self, anchored):
        _, store, _, verifier, _ = anchored
        store.add_donation(make_donation(donation_id="fresh"))
        with pytest.raises(DonationNotBatchedError) as exc_info:
            verifier.get_proof_payload("fresh")
        assert exc_info.value.code == ErrorCodes.DONATION_NOT_BATCHED

    def test_available_while_anchoring(self):
        rows = make_donations(3)
        store = make_store(rows)
        controller = make_controller(store=store)
        batch = controller.open_batch()
        controller.close_batch(batch.id, submit=False)

        payload = VerificationService(store).get_proof_payload(rows[1]["id"])

        assert payload.batch_status == BatchStatus.ANCHORING
        assert payload.onchain_tx_signature is None
        assert payload.explorer_url is None
        assert verify_hex(payload.proof, payload.leaf_hash, payload.merkle_root)

    def test_available_after_failure(self):
        rows = make_donations(2)
        store = make_store(rows)
        controller = make_controller(store=store)
        batch = controller.open_batch()
        controller.close_batch(batch.id)
        controller.fail_batch(batch.id, "dropped")

        payload = VerificationService(store).get_proof_payload(rows[0]["id"])
        assert payload.batch_status == BatchStatus.FAILED


class TestVerifyDonation:

    def test_untouched_donation_valid(self, anchored):
        rows, _, _, verifier, batch = anchored
        result = verifier.verify_donation(rows[3]["id"])
        assert result.valid
        assert result.error is None
        assert result.leaf_hash == result.stored_leaf_hash
        assert result.merkle_root == batch.merkle_root

    @pytest.mark.parametrize("changes", [
        {"amount": "100.01"},
        {"donor_name": "Impostor"},
        {"created_at": "2025-02-02T10:30:59Z"},
        {"payment_id": "pay_swapped"},
    ])
    def test_tampered_donation_detected(self, anchored, changes):
        rows, store, _, verifier, _ = anchored
        store.replace_donation(rows[2]["id"], changes)

        result = verifier.verify_donation(rows[2]["id"])

        assert not result.valid
        assert result.error.code == ErrorCodes.LEAF_HASH_MISMATCH
        assert result.leaf_hash != result.stored_leaf_hash

    def test_tamper_does_not_affect_other_donations(self, anchored):
        rows, store, _, verifier, _ = anchored
        store.replace_donation(rows[2]["id"], {"amount": "1.00"})
        assert verifier.verify_donation(rows[3]["id"]).valid

    def test_row_that_no_longer_parses(self, anchored):
        rows, store, _, verifier, _ = anchored
        store.replace_donation(rows[0]["id"], {"currency": "rupees"})

        result = verifier.verify_donation(rows[0]["id"])

        assert not result.valid
        assert result.error.code == ErrorCodes.LEAF_HASH_MISMATCH
        assert result.leaf_hash is None


class TestCheckProof:

    def test_valid(self, anchored):
        rows, _, _, verifier, _ = anchored
        payload = verifier.get_proof_payload(rows[4]["id"])
        check = check_proof(payload.proof, payload.leaf_hash, payload.merkle_root)
        assert check.valid
        assert check.proof_length == len(payload.proof)

    def test_wrong_root(self, anchored):
        rows, _, _, verifier, _ = anchored
        payload = verifier.get_proof_payload(rows[4]["id"])
        check = check_proof(payload.proof, payload.leaf_hash, to_hex(sha256(b"other")))
        assert not check.valid
        assert check.error.code == ErrorCodes.PROOF_MISMATCH

    def test_garbage_never_raises(self):
        check = check_proof(["not hex"], "xyz", "")
        assert not check.valid
