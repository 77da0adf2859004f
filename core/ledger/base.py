"""
Ledger Collaborator Interfaces

Abstract seams between the anchoring engine and the outside world:

- DonationStore: donations, leaf assignments, batch records, batch events
- LedgerClient: submit a root, poll finality, read a balance
- WalletCheck: is the anchoring wallet able to pay for a submission

Concrete implementations live beside this module (memory_store, fake, rpc).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from core.schemas import (
    AnchorBatch,
    BatchEvent,
    BatchStatus,
    DonationRecord,
    FinalityStatus,
    LeafAssignment,
)


logger = logging.getLogger(__name__)


class DonationStore(ABC):
    """
    Persistence for donations and anchor batches.

    Implementations must make commit_close and compare_and_update atomic:
    they are the compare-and-set points that keep two closers from
    sealing the same batch twice.
    """

    # -------------------------------------------------------------------------
    # Donations
    # -------------------------------------------------------------------------

    @abstractmethod
    def add_donation(self, donation: DonationRecord | dict[str, Any]) -> None:
        """Insert a donation row. Rows are stored raw; the codec validates at close."""

    @abstractmethod
    def get_donation(self, donation_id: str) -> dict[str, Any] | None:
        """Raw donation row, or None."""

    @abstractmethod
    def list_unassigned(
        self,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Donations with no batch assignment, ordered by creation time, skipping the first offset."""

    @abstractmethod
    def get_assignment(self, donation_id: str) -> LeafAssignment | None:
        """Leaf assignment of a donation, or None if not yet batched."""

    @abstractmethod
    def list_assignments(self, batch_id: str) -> list[LeafAssignment]:
        """Assignments of a batch ordered by leaf index."""

    # -------------------------------------------------------------------------
    # Batches
    # -------------------------------------------------------------------------

    @abstractmethod
    def create_batch(self, batch: AnchorBatch) -> AnchorBatch:
        """Insert a new batch record."""

    @abstractmethod
    def get_batch(self, batch_id: str) -> AnchorBatch | None:
        """Batch by id, or None."""

    @abstractmethod
    def list_batches(self, status: Optional[BatchStatus] = None) -> list[AnchorBatch]:
        """Batches in creation order, optionally filtered by status."""

    @abstractmethod
    def commit_close(
        self,
        batch_id: str,
        changes: dict[str, Any],
        assignments: Sequence[LeafAssignment],
    ) -> AnchorBatch:
        """
        Atomically seal a pending batch.

        Moves the batch pending -> anchoring, writes the root and other
        fields in ``changes`` and records every leaf assignment.

        Raises:
            BatchNotFoundError: Unknown batch
            BatchConflictError: Batch not pending, root already set, or a
                donation is already assigned elsewhere
        """

    @abstractmethod
    def compare_and_update(
        self,
        batch_id: str,
        expected_status: BatchStatus,
        changes: dict[str, Any],
    ) -> AnchorBatch:
        """
        Apply ``changes`` only if the batch is still in ``expected_status``.

        Raises:
            BatchNotFoundError: Unknown batch
            BatchConflictError: Status differs, or changes touch the root
                of a sealed batch
        """

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    @abstractmethod
    def append_event(
        self,
        batch_id: str,
        kind: str,
        *,
        from_status: Optional[BatchStatus] = None,
        to_status: Optional[BatchStatus] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> BatchEvent:
        """Append to a batch's event log; the store assigns the sequence number."""

    @abstractmethod
    def list_events(self, batch_id: str) -> list[BatchEvent]:
        """Events of a batch in append order."""


class LedgerClient(ABC):
    """Ledger submission service."""

    network: str = "unknown"

    @abstractmethod
    def submit(self, payload: bytes, *, batch_id: Optional[str] = None) -> str:
        """
        Submit a 32-byte payload (the Merkle root) and return the
        transaction identifier.

        Raises:
            SubmissionError: Ledger rejection or network failure
        """

    @abstractmethod
    def get_finality(self, tx_signature: str) -> FinalityStatus:
        """Current finality of a submitted transaction."""

    @abstractmethod
    def get_balance(self, account: Optional[str] = None) -> int:
        """Balance of an account in the ledger's smallest unit."""

    def explorer_url(self, tx_signature: str) -> Optional[str]:
        """Public explorer link for a transaction, if the ledger has one."""
        return None


class WalletCheck(ABC):
    """Funding check consulted before every submission."""

    @abstractmethod
    def is_funded(self) -> bool:
        ...

    def describe(self) -> dict[str, Any]:
        """Status details for operators, always including "funded"."""
        return {"funded": self.is_funded()}


class BalanceWalletCheck(WalletCheck):
    """
    Funded when the anchor account's balance is at least min_balance.

    A balance lookup that fails counts as unfunded.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        account: Optional[str] = None,
        min_balance: int = 10_000,
    ) -> None:
        self.ledger = ledger
        self.account = account
        self.min_balance = min_balance

    def _balance(self) -> Optional[int]:
        try:
            return self.ledger.get_balance(self.account)
        except Exception as e:
            logger.warning(f"Balance lookup failed for {self.account or 'anchor account'}: {e}")
            return None

    def is_funded(self) -> bool:
        return self.describe()["funded"]

    def describe(self) -> dict[str, Any]:
        balance = self._balance()
        return {
            "account": self.account,
            "network": self.ledger.network,
            "balance": balance,
            "min_balance": self.min_balance,
            "funded": balance is not None and balance >= self.min_balance,
        }


class AlwaysFunded(WalletCheck):
    """Wallet check for ledgers with no fees (fake mode)."""

    def is_funded(self) -> bool:
        return True
