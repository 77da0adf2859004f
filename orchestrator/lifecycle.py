"""
Batch Lifecycle Controller

Owns the anchor batch state machine:

    pending --close--> anchoring --finality--> confirmed
                            \\------failure---> failed

- close:  freeze the unassigned donations, hash them into leaves, build
          the Merkle root and seal the batch (pending -> anchoring) in one
          compare-and-set on the store, then hand the root to the ledger.
- submit: idempotent; a batch that already carries a transaction
          signature is returned unchanged, otherwise the STORED root is
          sent. A new root is never computed for a sealed batch.
- poll:   one finality lookup; confirmed and failed are terminal.

Mutual exclusion: one re-entrant lock per batch id serializes close,
submit, poll and fail for that batch inside this process. The store's
compare-and-set guards the same transitions across processes. A batch's lock
is dropped once the batch is confirmed or failed.
"""
from __future__ import annotations

import logging
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Iterator, Optional

from core.codec import hash_donations
from core.config.runtime import RuntimeConfig
from core.crypto.hashing import from_hex, to_hex
from core.ledger.base import BalanceWalletCheck, DonationStore, LedgerClient, WalletCheck
from core.merkle import build_merkle_tree
from core.receipts import ReceiptRecorder
from core.schemas import (
    CODEC_VERSION,
    AnchorBatch,
    AnchorException,
    BatchConflictError,
    BatchEvent,
    BatchNotFoundError,
    BatchStatus,
    CodecError,
    DonationRecord,
    EmptyBatchError,
    ErrorCodes,
    FinalityConfirmed,
    FinalityFailed,
    FinalityPending,
    FinalityStatus,
    FinalityTimeoutError,
    InvalidTransitionError,
    LeafAssignment,
    SubmissionError,
    WalletUnfundedError,
    can_transition,
)

from orchestrator.retry import RetryInfo, RetryPolicy


logger = logging.getLogger(__name__)


# =============================================================================
# Results
# =============================================================================

@dataclass
class ExcludedDonation:
    """A donation left out of a batch because the codec rejected it."""
    position: int
    donation_id: Optional[str]
    error: CodecError

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": self.position,
            "donation_id": self.donation_id,
            "error": self.error.to_error_model().model_dump(),
        }


@dataclass
class CloseReport:
    """Outcome of closing a batch."""
    batch: AnchorBatch
    assignments: list[LeafAssignment] = field(default_factory=list)
    excluded: list[ExcludedDonation] = field(default_factory=list)
    submitted: bool = False
    submit_error: Optional[AnchorException] = None

    @property
    def batch_id(self) -> str:
        return self.batch.id

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch.id,
            "status": self.batch.status.value,
            "merkle_root": self.batch.merkle_root,
            "donation_count": self.batch.donation_count,
            "excluded": [e.to_dict() for e in self.excluded],
            "submitted": self.submitted,
            "submit_error": (
                self.submit_error.to_error_model().model_dump()
                if self.submit_error is not None else None
            ),
        }


@dataclass
class ResumeOutcome:
    """What resume_anchoring did with one anchoring batch."""
    batch_id: str
    action: str  # "polled" | "resubmitted"
    status: BatchStatus
    error: Optional[AnchorException] = None


# =============================================================================
# Controller
# =============================================================================

class BatchLifecycleController:
    """
    Drives anchor batches from accumulation to confirmed or failed.

    Args:
        store: Donation and batch persistence
        ledger: Ledger submission service
        wallet: Funding check; defaults to a balance check on the ledger
        config: Runtime configuration (batching, finality, retry)
        sleep: Sleep function used between finality polls
        clock: Monotonic clock used for finality timeouts
        recorder: Receipt log shared with the ledger client; the newest
            receipt of a batch is summarized in its submit events
    """

    def __init__(
        self,
        store: DonationStore,
        ledger: LedgerClient,
        wallet: Optional[WalletCheck] = None,
        config: Optional[RuntimeConfig] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        recorder: Optional[ReceiptRecorder] = None,
    ) -> None:
        self.store = store
        self.ledger = ledger
        self.config = config or RuntimeConfig()
        self.wallet = wallet or BalanceWalletCheck(
            ledger,
            account=self.config.ledger.anchor_account,
            min_balance=self.config.ledger.min_balance,
        )
        self.retry_policy = RetryPolicy.from_config(self.config.retry)
        self._sleep = sleep
        self._clock = clock
        self.recorder = recorder
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _batch_lock(self, batch_id: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(batch_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[batch_id] = lock
            return lock

    @contextmanager
    def _locked(self, batch_id: str) -> Iterator[None]:
        """Hold the batch lock; forget it once the batch is terminal or unknown."""
        lock = self._batch_lock(batch_id)
        with lock:
            try:
                yield
            finally:
                batch = self.store.get_batch(batch_id)
                if batch is None or batch.status.is_terminal:
                    with self._locks_guard:
                        if self._locks.get(batch_id) is lock:
                            del self._locks[batch_id]

    def _collect_leaves(
        self,
        max_size: int,
        workers: int,
    ) -> tuple[list[tuple[DonationRecord, bytes]], list[ExcludedDonation]]:
        """
        Hash unassigned donations in creation order until max_size are well-formed.

        Malformed rows stay unassigned, so the queue is read page by page
        past them instead of letting them fill the batch.
        """
        included: list[tuple[DonationRecord, bytes]] = []
        excluded: list[ExcludedDonation] = []
        offset = 0

        while len(included) < max_size:
            wanted = max_size - len(included)
            rows = self.store.list_unassigned(limit=wanted, offset=offset)
            if not rows:
                break

            hashed = hash_donations(rows, workers=workers)
            excluded.extend(
                ExcludedDonation(
                    position=offset + index,
                    donation_id=error.donation_id,
                    error=error,
                )
                for index, error in hashed.failures
            )
            included.extend(hashed.included())
            offset += len(rows)
            if len(rows) < wanted:
                break

        return included, excluded

    def _latest_receipt_id(self, batch_id: str) -> Optional[str]:
        if self.recorder is None:
            return None
        receipt = self.recorder.latest(batch_id)
        return receipt.receipt_id if receipt is not None else None

    def _with_receipt(
        self,
        batch_id: str,
        details: dict[str, Any],
        previous_id: Optional[str],
    ) -> dict[str, Any]:
        """Add the batch's newest receipt to event details if it is newer than previous_id."""
        if self.recorder is not None:
            receipt = self.recorder.latest(batch_id)
            if receipt is not None and receipt.receipt_id != previous_id:
                details["receipt"] = receipt.summary()
        return details

    def _require(self, batch_id: str) -> AnchorBatch:
        batch = self.store.get_batch(batch_id)
        if batch is None:
            raise BatchNotFoundError(batch_id)
        return batch

    def _transition(
        self,
        batch: AnchorBatch,
        to_status: BatchStatus,
        changes: Optional[dict[str, Any]] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> AnchorBatch:
        """Guarded status change plus its event."""
        changes = dict(changes or {})
        if not can_transition(batch.status, to_status):
            raise InvalidTransitionError(batch.id, batch.status.value, to_status.value)

        if to_status == BatchStatus.CONFIRMED:
            root = changes.get("merkle_root", batch.merkle_root)
            signature = changes.get("onchain_tx_signature", batch.onchain_tx_signature)
            if root is None or signature is None:
                raise InvalidTransitionError(
                    batch.id,
                    batch.status.value,
                    to_status.value,
                    reason="confirmation requires a Merkle root and a transaction signature",
                )

        changes["status"] = to_status
        updated = self.store.compare_and_update(batch.id, batch.status, changes)
        self.store.append_event(
            batch.id,
            "status",
            from_status=batch.status,
            to_status=to_status,
            details=details or {},
        )
        logger.info(f"Batch {batch.id}: {batch.status.value} -> {to_status.value}")
        return updated

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_batch(self, batch_id: str) -> AnchorBatch:
        return self._require(batch_id)

    def list_batches(self, status: Optional[BatchStatus] = None) -> list[AnchorBatch]:
        return self.store.list_batches(status)

    def list_events(self, batch_id: str) -> list[BatchEvent]:
        self._require(batch_id)
        return self.store.list_events(batch_id)

    def retry_info(self, batch_id: str) -> RetryInfo:
        return RetryInfo.for_batch(self._require(batch_id), self.retry_policy)

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def open_batch(self, batch_id: Optional[str] = None) -> AnchorBatch:
        """Create an empty pending batch."""
        batch = self.store.create_batch(AnchorBatch(id=batch_id or str(uuid.uuid4())))
        self.store.append_event(batch.id, "created", to_status=BatchStatus.PENDING)
        logger.info(f"Opened batch {batch.id}")
        return batch

    def close_batch(self, batch_id: str, *, submit: bool = True) -> CloseReport:
        """
        Seal a pending batch and, by default, submit its root.

        Malformed donations are excluded and reported; the rest become
        leaves in creation order. A failure to submit does not undo the
        close: the batch stays anchoring with its root and the error is
        carried in the report for a later submit_batch.

        Raises:
            BatchNotFoundError: Unknown batch
            InvalidTransitionError: Batch is not pending
            EmptyBatchError: No (or too few) well-formed donations
            BatchConflictError: Another closer won the compare-and-set
        """
        with self._locked(batch_id):
            batch = self._require(batch_id)
            if batch.status != BatchStatus.PENDING:
                raise InvalidTransitionError(
                    batch_id,
                    batch.status.value,
                    BatchStatus.ANCHORING.value,
                    reason="batch is already closed",
                )

            batching = self.config.batching
            included, excluded = self._collect_leaves(batching.max_batch_size, batching.hash_workers)

            if not included:
                raise EmptyBatchError(batch_id=batch_id, details={"excluded": len(excluded)})
            if len(included) < batching.min_batch_size:
                raise EmptyBatchError(
                    f"Batch {batch_id} has {len(included)} donations, "
                    f"minimum is {batching.min_batch_size}",
                    batch_id=batch_id,
                )

            tree = build_merkle_tree([digest for _, digest in included])
            assignments = [
                LeafAssignment(
                    donation_id=record.id,
                    batch_id=batch_id,
                    leaf_index=index,
                    leaf_hash=to_hex(digest),
                )
                for index, (record, digest) in enumerate(included)
            ]
            records = [record for record, _ in included]

            sealed = self.store.commit_close(
                batch_id,
                {
                    "donation_ids": [r.id for r in records],
                    "donation_count": len(records),
                    "total_amount": sum((r.amount for r in records), Decimal("0.00")),
                    "merkle_root": tree.root_hex,
                    "tree_height": tree.height,
                    "codec_version": CODEC_VERSION,
                    "batch_start_time": min(r.created_at for r in records),
                    "batch_end_time": max(r.created_at for r in records),
                },
                assignments,
            )
            self.store.append_event(
                batch_id,
                "sealed",
                from_status=BatchStatus.PENDING,
                to_status=BatchStatus.ANCHORING,
                details={
                    "merkle_root": sealed.merkle_root,
                    "donation_count": sealed.donation_count,
                    "tree_height": sealed.tree_height,
                },
            )
            if excluded:
                self.store.append_event(
                    batch_id,
                    "note",
                    details={"excluded": [e.to_dict() for e in excluded]},
                )
                logger.error(
                    f"Batch {batch_id}: excluded {len(excluded)} malformed donation(s), "
                    f"operator review required"
                )
            logger.info(
                f"Sealed batch {batch_id}: {sealed.donation_count} donations, "
                f"root {sealed.merkle_root[:16]}..., height {sealed.tree_height}"
            )

            report = CloseReport(batch=sealed, assignments=assignments, excluded=excluded)
            if not submit:
                return report

            try:
                report.batch = self.submit_batch(batch_id)
                report.submitted = report.batch.onchain_tx_signature is not None
            except (SubmissionError, WalletUnfundedError) as e:
                report.submit_error = e
                report.batch = self._require(batch_id)
            return report

    def submit_batch(self, batch_id: str) -> AnchorBatch:
        """
        Hand the batch's stored root to the ledger.

        Idempotent: a batch that already has a transaction signature is
        returned unchanged. Each failed attempt increments retry_count;
        reaching the retry limit moves the batch to failed.

        Raises:
            InvalidTransitionError: Batch is pending or terminal
            WalletUnfundedError: Funding check failed; nothing was submitted
            SubmissionError: Ledger rejected the root or was unreachable
        """
        with self._locked(batch_id):
            batch = self._require(batch_id)
            if batch.status != BatchStatus.ANCHORING:
                raise InvalidTransitionError(
                    batch_id,
                    batch.status.value,
                    BatchStatus.ANCHORING.value,
                    reason="only an anchoring batch can be submitted",
                )
            if batch.onchain_tx_signature is not None:
                logger.info(f"Batch {batch_id} already submitted: {batch.onchain_tx_signature}")
                return batch
            if batch.merkle_root is None:
                raise BatchConflictError(f"Batch {batch_id} has no Merkle root", batch_id=batch_id)

            wallet_status = self.wallet.describe()
            if not wallet_status["funded"]:
                error = WalletUnfundedError(batch_id=batch_id, details=wallet_status)
                self.store.compare_and_update(
                    batch_id, BatchStatus.ANCHORING, {"error_message": error.message}
                )
                self.store.append_event(
                    batch_id,
                    "submit_failed",
                    details={"code": error.code, "message": error.message},
                )
                logger.error(f"Batch {batch_id}: {error.message}, submission skipped")
                raise error

            previous_receipt = self._latest_receipt_id(batch_id)
            try:
                signature = self.ledger.submit(from_hex(batch.merkle_root), batch_id=batch_id)
            except SubmissionError as e:
                exhausted = self._record_submit_failure(batch, e, previous_receipt)
                if exhausted is not None:
                    raise exhausted from e
                raise

            updated = self.store.compare_and_update(
                batch_id,
                BatchStatus.ANCHORING,
                {"onchain_tx_signature": signature, "error_message": None},
            )
            self.store.append_event(
                batch_id,
                "submitted",
                details=self._with_receipt(
                    batch_id,
                    {"tx_signature": signature, "attempt": batch.retry_count + 1},
                    previous_receipt,
                ),
            )
            logger.info(f"Batch {batch_id} submitted: {signature}")
            return updated

    def _record_submit_failure(
        self,
        batch: AnchorBatch,
        error: SubmissionError,
        previous_receipt: Optional[str] = None,
    ) -> Optional[SubmissionError]:
        """Count a failed attempt; returns the retry-limit error once attempts run out."""
        retry_count = batch.retry_count + 1
        changes = {"retry_count": retry_count, "error_message": error.message}
        self.store.append_event(
            batch.id,
            "submit_failed",
            details=self._with_receipt(
                batch.id,
                {"code": error.code, "message": error.message, "retry_count": retry_count},
                previous_receipt,
            ),
        )

        if self.retry_policy.exhausted(retry_count):
            self._transition(
                batch,
                BatchStatus.FAILED,
                changes,
                details={"reason": "retry limit reached", "retry_count": retry_count},
            )
            logger.error(
                f"Batch {batch.id}: submission failed {retry_count} times, marked failed"
            )
            return SubmissionError(
                f"Submission failed {retry_count} times: {error.message}",
                batch_id=batch.id,
                details={"retry_count": retry_count},
                code=ErrorCodes.RETRY_LIMIT_EXCEEDED,
                retryable=False,
            )

        self.store.compare_and_update(batch.id, BatchStatus.ANCHORING, changes)
        logger.warning(
            f"Batch {batch.id}: submission attempt {retry_count} failed ({error.message}); "
            f"retry in {self.retry_policy.delay_ms(retry_count)}ms"
        )
        error.details.update({
            "retry_count": retry_count,
            "next_delay_ms": self.retry_policy.delay_ms(retry_count),
        })
        return None

    def poll_finality(self, batch_id: str) -> FinalityStatus:
        """
        Look up finality once and apply it.

        Terminal batches report their recorded outcome without a ledger call.

        Raises:
            InvalidTransitionError: Batch is still pending
            BatchConflictError: Batch has not been submitted
            SubmissionError: Ledger lookup failed
        """
        with self._locked(batch_id):
            batch = self._require(batch_id)
            if batch.status == BatchStatus.CONFIRMED:
                return FinalityConfirmed(
                    slot=batch.onchain_slot or 0,
                    timestamp=batch.onchain_timestamp,
                    fee=batch.onchain_fee,
                )
            if batch.status == BatchStatus.FAILED:
                return FinalityFailed(reason=batch.error_message or "failed")
            if batch.status == BatchStatus.PENDING:
                raise InvalidTransitionError(
                    batch_id,
                    batch.status.value,
                    BatchStatus.CONFIRMED.value,
                    reason="batch is not closed",
                )
            if batch.onchain_tx_signature is None:
                raise BatchConflictError(
                    f"Batch {batch_id} has no submitted transaction to poll",
                    batch_id=batch_id,
                )

            status = self.ledger.get_finality(batch.onchain_tx_signature)

            if isinstance(status, FinalityConfirmed):
                self._transition(
                    batch,
                    BatchStatus.CONFIRMED,
                    {
                        "onchain_slot": status.slot,
                        "onchain_timestamp": status.timestamp,
                        "onchain_fee": status.fee,
                        "error_message": None,
                    },
                    details={"slot": status.slot, "tx_signature": batch.onchain_tx_signature},
                )
            elif isinstance(status, FinalityFailed):
                self._transition(
                    batch,
                    BatchStatus.FAILED,
                    {"error_message": status.reason},
                    details={"reason": status.reason},
                )
            return status

    def await_finality(
        self,
        batch_id: str,
        timeout_s: Optional[float] = None,
        poll_interval_s: Optional[float] = None,
    ) -> FinalityStatus:
        """
        Poll until the batch is confirmed or failed.

        Lookup errors are logged and polling continues until the deadline.

        Raises:
            FinalityTimeoutError: Still not final at the deadline; the batch
                stays anchoring and can be polled again later
        """
        timeout = self.config.finality.timeout_s if timeout_s is None else timeout_s
        interval = self.config.finality.poll_interval_s if poll_interval_s is None else poll_interval_s
        deadline = self._clock() + timeout

        while True:
            try:
                status = self.poll_finality(batch_id)
                if not isinstance(status, FinalityPending):
                    return status
            except SubmissionError as e:
                logger.warning(f"Finality lookup for batch {batch_id} failed: {e.message}")

            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            self._sleep(min(interval, remaining))

        batch = self._require(batch_id)
        self.store.append_event(
            batch_id,
            "note",
            details={"code": ErrorCodes.FINALITY_TIMEOUT, "timeout_s": timeout},
        )
        logger.error(f"Batch {batch_id} not final after {timeout:g}s, left anchoring")
        raise FinalityTimeoutError(batch_id, batch.onchain_tx_signature, timeout)

    def fail_batch(self, batch_id: str, reason: str) -> AnchorBatch:
        """
        Operator remediation: mark an anchoring batch failed.

        On an already failed batch the reason is appended to its diagnostics.
        """
        with self._locked(batch_id):
            batch = self._require(batch_id)
            if batch.status == BatchStatus.FAILED:
                message = f"{batch.error_message}; {reason}" if batch.error_message else reason
                updated = self.store.compare_and_update(
                    batch_id, BatchStatus.FAILED, {"error_message": message}
                )
                self.store.append_event(batch_id, "note", details={"reason": reason})
                return updated
            return self._transition(
                batch,
                BatchStatus.FAILED,
                {"error_message": reason},
                details={"reason": reason, "by": "operator"},
            )

    def resume_anchoring(self) -> list[ResumeOutcome]:
        """
        Pick up every anchoring batch after a restart.

        Batches with a transaction signature are polled once; the others
        are resubmitted with their stored root.
        """
        outcomes: list[ResumeOutcome] = []
        for batch in self.store.list_batches(BatchStatus.ANCHORING):
            action = "polled" if batch.onchain_tx_signature else "resubmitted"
            error: Optional[AnchorException] = None
            try:
                if batch.onchain_tx_signature:
                    self.poll_finality(batch.id)
                else:
                    self.submit_batch(batch.id)
            except AnchorException as e:
                logger.warning(f"Resume of batch {batch.id} ({action}) failed: {e.message}")
                error = e
            outcomes.append(
                ResumeOutcome(
                    batch_id=batch.id,
                    action=action,
                    status=self._require(batch.id).status,
                    error=error,
                )
            )
        logger.info(f"Resumed {len(outcomes)} anchoring batch(es)")
        return outcomes
