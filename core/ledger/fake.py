"""
Fake Ledger

In-process LedgerClient for tests and `mode: fake`. Submissions get a
deterministic signature derived from the payload; failures and finality
outcomes can be scripted per call.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Iterable, Optional

from core.crypto.hashing import sha256, to_hex
from core.schemas import (
    FinalityConfirmed,
    FinalityFailed,
    FinalityPending,
    FinalityStatus,
    SubmissionError,
)

from .base import LedgerClient


logger = logging.getLogger(__name__)


class FakeLedger(LedgerClient):
    """
    Scriptable in-memory ledger.

    Usage:
        ledger = FakeLedger()
        ledger.fail_next_submits(2)                    # next two submits raise
        ledger.script_finality([FinalityPending()])    # first poll pending
        sig = ledger.submit(root)

    Unscripted polls confirm immediately at an increasing slot.
    """

    network = "fake"

    def __init__(
        self,
        *,
        balance: int = 1_000_000_000,
        start_slot: int = 1_000,
        fee: int = 5_000,
        explorer_base_url: Optional[str] = None,
    ) -> None:
        self.balance = balance
        self.fee = fee
        self.explorer_base_url = explorer_base_url
        self._slot = start_slot
        self._lock = threading.Lock()
        self._submit_failures: deque[str] = deque()
        self._finality_script: deque[FinalityStatus] = deque()
        self._final: dict[str, FinalityStatus] = {}
        self._never_final = False
        self.submissions: list[tuple[str, bytes, Optional[str]]] = []
        self.polls: list[str] = []

    # -------------------------------------------------------------------------
    # Scripting
    # -------------------------------------------------------------------------

    def fail_next_submits(self, count: int = 1, reason: str = "simulated ledger rejection") -> None:
        with self._lock:
            self._submit_failures.extend([reason] * count)

    def script_finality(self, outcomes: Iterable[FinalityStatus]) -> None:
        """Queue results for upcoming get_finality calls, across all signatures."""
        with self._lock:
            self._finality_script.extend(outcomes)

    def pending_forever(self) -> None:
        """Every unscripted poll reports pending."""
        with self._lock:
            self._never_final = True

    # -------------------------------------------------------------------------
    # LedgerClient
    # -------------------------------------------------------------------------

    def submit(self, payload: bytes, *, batch_id: Optional[str] = None) -> str:
        if len(payload) != 32:
            raise SubmissionError(
                f"Payload must be 32 bytes, got {len(payload)}",
                batch_id=batch_id,
                retryable=False,
            )
        with self._lock:
            if self._submit_failures:
                reason = self._submit_failures.popleft()
                logger.warning(f"FakeLedger rejecting submission for batch {batch_id}: {reason}")
                raise SubmissionError(reason, batch_id=batch_id)
            if self.balance < self.fee:
                raise SubmissionError(
                    "Insufficient balance for fee",
                    batch_id=batch_id,
                    retryable=False,
                )
            attempt = len(self.submissions)
            signature = "fake_" + to_hex(sha256(payload + attempt.to_bytes(4, "big")))[:40]
            self.submissions.append((signature, bytes(payload), batch_id))
            self.balance -= self.fee
        logger.info(f"FakeLedger accepted batch {batch_id}: {signature}")
        return signature

    def get_finality(self, tx_signature: str) -> FinalityStatus:
        with self._lock:
            self.polls.append(tx_signature)
            if tx_signature in self._final:
                return self._final[tx_signature]
            if not any(sig == tx_signature for sig, _, _ in self.submissions):
                return FinalityFailed(reason=f"Unknown transaction {tx_signature}")

            if self._finality_script:
                outcome = self._finality_script.popleft()
            elif self._never_final:
                outcome = FinalityPending()
            else:
                self._slot += 1
                outcome = FinalityConfirmed(
                    slot=self._slot,
                    timestamp=datetime.now(timezone.utc).replace(microsecond=0),
                    fee=self.fee,
                )

            if not isinstance(outcome, FinalityPending):
                self._final[tx_signature] = outcome
            return outcome

    def get_balance(self, account: Optional[str] = None) -> int:
        return self.balance

    def explorer_url(self, tx_signature: str) -> Optional[str]:
        if self.explorer_base_url is None:
            return None
        return f"{self.explorer_base_url}/tx/{tx_signature}"
