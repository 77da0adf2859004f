"""
In-Memory Donation Store

Thread-safe DonationStore used by tests, the CLI and the API in
single-process deployments. Every mutation happens under one lock, which
makes commit_close and compare_and_update true compare-and-set operations.

Rows are kept as raw mappings: a malformed donation can sit in the store
and is only rejected by the codec when its batch is closed.
"""

from __future__ import annotations

import itertools
import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Sequence

from core.schemas import (
    AnchorBatch,
    BatchConflictError,
    BatchEvent,
    BatchNotFoundError,
    BatchStatus,
    DonationNotFoundError,
    DonationRecord,
    LeafAssignment,
    parse_timestamp,
)

from .base import DonationStore


logger = logging.getLogger(__name__)

# Rows whose created_at cannot be parsed sort after every dated row
_UNDATED = datetime.max.replace(tzinfo=timezone.utc)

# Fields that never change once a batch is sealed
_SEALED_FIELDS = ("merkle_root", "donation_ids", "tree_height", "codec_version")


def _creation_key(row: dict[str, Any]) -> datetime:
    try:
        return parse_timestamp(row.get("created_at"))
    except (TypeError, ValueError):
        return _UNDATED


class InMemoryDonationStore(DonationStore):
    """Dict-backed DonationStore guarded by a single re-entrant lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._donations: dict[str, dict[str, Any]] = {}
        self._inserted: dict[str, int] = {}
        self._assignments: dict[str, LeafAssignment] = {}
        self._batches: dict[str, AnchorBatch] = {}
        self._events: dict[str, list[BatchEvent]] = {}
        self._seq = itertools.count()

    @classmethod
    def from_json_file(cls, path: str | Path) -> "InMemoryDonationStore":
        """Build a store seeded from a JSON array of donation rows."""
        with open(path) as f:
            rows = json.load(f)
        if not isinstance(rows, list):
            raise ValueError(f"Seed file {path} must contain a JSON array")
        store = cls()
        for row in rows:
            store.add_donation(row)
        logger.info(f"Seeded store with {len(rows)} donations from {path}")
        return store

    # -------------------------------------------------------------------------
    # Donations
    # -------------------------------------------------------------------------

    def add_donation(self, donation: DonationRecord | dict[str, Any]) -> None:
        if isinstance(donation, DonationRecord):
            row = donation.model_dump()
        else:
            row = dict(donation)

        donation_id = row.get("id")
        if donation_id is None or str(donation_id) == "":
            raise ValueError("Donation row has no id")
        donation_id = str(donation_id)

        with self._lock:
            if donation_id in self._donations:
                raise ValueError(f"Donation already exists: {donation_id}")
            self._donations[donation_id] = row
            self._inserted[donation_id] = next(self._seq)

    def replace_donation(self, donation_id: str, changes: dict[str, Any]) -> None:
        """
        Overwrite fields of a stored row.

        Models an out-of-band edit of the donations table; verification
        detects it for donations that are already batched.
        """
        with self._lock:
            if donation_id not in self._donations:
                raise DonationNotFoundError(donation_id)
            self._donations[donation_id] = {**self._donations[donation_id], **changes}

    def get_donation(self, donation_id: str) -> dict[str, Any] | None:
        with self._lock:
            row = self._donations.get(donation_id)
            return dict(row) if row is not None else None

    def list_unassigned(
        self,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        with self._lock:
            pending = [
                (donation_id, row)
                for donation_id, row in self._donations.items()
                if donation_id not in self._assignments
            ]
            pending.sort(key=lambda item: (_creation_key(item[1]), self._inserted[item[0]]))
            rows = [dict(row) for _, row in pending]
        rows = rows[offset:]
        if limit is not None:
            rows = rows[:limit]
        return rows

    def get_assignment(self, donation_id: str) -> LeafAssignment | None:
        with self._lock:
            return self._assignments.get(donation_id)

    def list_assignments(self, batch_id: str) -> list[LeafAssignment]:
        with self._lock:
            found = [a for a in self._assignments.values() if a.batch_id == batch_id]
        return sorted(found, key=lambda a: a.leaf_index)

    # -------------------------------------------------------------------------
    # Batches
    # -------------------------------------------------------------------------

    def create_batch(self, batch: AnchorBatch) -> AnchorBatch:
        with self._lock:
            if batch.id in self._batches:
                raise BatchConflictError(f"Batch already exists: {batch.id}", batch_id=batch.id)
            self._batches[batch.id] = batch.model_copy(deep=True)
            self._events.setdefault(batch.id, [])
            return batch.model_copy(deep=True)

    def get_batch(self, batch_id: str) -> AnchorBatch | None:
        with self._lock:
            batch = self._batches.get(batch_id)
            return batch.model_copy(deep=True) if batch is not None else None

    def list_batches(self, status: Optional[BatchStatus] = None) -> list[AnchorBatch]:
        with self._lock:
            batches = [
                b.model_copy(deep=True)
                for b in self._batches.values()
                if status is None or b.status == status
            ]
        return sorted(batches, key=lambda b: b.created_at)

    def _require_batch(self, batch_id: str) -> AnchorBatch:
        batch = self._batches.get(batch_id)
        if batch is None:
            raise BatchNotFoundError(batch_id)
        return batch

    @staticmethod
    def _apply(batch: AnchorBatch, changes: dict[str, Any]) -> AnchorBatch:
        data = batch.model_dump()
        data.update(changes)
        data["updated_at"] = datetime.now(timezone.utc)
        return AnchorBatch.model_validate(data)

    def commit_close(
        self,
        batch_id: str,
        changes: dict[str, Any],
        assignments: Sequence[LeafAssignment],
    ) -> AnchorBatch:
        with self._lock:
            batch = self._require_batch(batch_id)
            if batch.status != BatchStatus.PENDING:
                raise BatchConflictError(
                    f"Batch {batch_id} is {batch.status.value}, expected pending",
                    batch_id=batch_id,
                    details={"status": batch.status.value},
                )
            if batch.merkle_root is not None:
                raise BatchConflictError(
                    f"Batch {batch_id} already has a Merkle root",
                    batch_id=batch_id,
                )
            for assignment in assignments:
                if assignment.batch_id != batch_id:
                    raise BatchConflictError(
                        f"Assignment for {assignment.donation_id} targets batch {assignment.batch_id}",
                        batch_id=batch_id,
                    )
                if assignment.donation_id not in self._donations:
                    raise DonationNotFoundError(assignment.donation_id)
                existing = self._assignments.get(assignment.donation_id)
                if existing is not None:
                    raise BatchConflictError(
                        f"Donation {assignment.donation_id} is already in batch {existing.batch_id}",
                        batch_id=batch_id,
                        details={"donation_id": assignment.donation_id},
                    )

            updated = self._apply(batch, {**changes, "status": BatchStatus.ANCHORING})
            self._batches[batch_id] = updated
            for assignment in assignments:
                self._assignments[assignment.donation_id] = assignment
            return updated.model_copy(deep=True)

    def compare_and_update(
        self,
        batch_id: str,
        expected_status: BatchStatus,
        changes: dict[str, Any],
    ) -> AnchorBatch:
        with self._lock:
            batch = self._require_batch(batch_id)
            if batch.status != expected_status:
                raise BatchConflictError(
                    f"Batch {batch_id} is {batch.status.value}, expected {expected_status.value}",
                    batch_id=batch_id,
                    details={"status": batch.status.value, "expected": expected_status.value},
                )
            if batch.is_sealed:
                for name in _SEALED_FIELDS:
                    if name in changes and changes[name] != getattr(batch, name):
                        raise BatchConflictError(
                            f"Batch {batch_id} is sealed; {name} cannot change",
                            batch_id=batch_id,
                            details={"field": name},
                        )

            updated = self._apply(batch, changes)
            self._batches[batch_id] = updated
            return updated.model_copy(deep=True)

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def append_event(
        self,
        batch_id: str,
        kind: str,
        *,
        from_status: Optional[BatchStatus] = None,
        to_status: Optional[BatchStatus] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> BatchEvent:
        with self._lock:
            self._require_batch(batch_id)
            log = self._events.setdefault(batch_id, [])
            event = BatchEvent(
                batch_id=batch_id,
                sequence=len(log),
                kind=kind,
                from_status=from_status,
                to_status=to_status,
                details=details or {},
            )
            log.append(event)
            return event

    def list_events(self, batch_id: str) -> list[BatchEvent]:
        with self._lock:
            return list(self._events.get(batch_id, []))
