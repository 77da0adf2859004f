"""
Retry Policy

Resubmission of an anchoring batch always re-drives the same stored root.
This module only decides whether another attempt is allowed and how long
the caller should wait before making it:

    delay_ms = base_delay_ms * 2 ** retry_count
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from core.config.runtime import RetryConfig
from core.schemas import AnchorBatch, BatchStatus


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff for batch resubmission."""
    max_retries: int = 5
    base_delay_ms: int = 1000

    @classmethod
    def from_config(cls, config: RetryConfig) -> "RetryPolicy":
        return cls(max_retries=config.max_retries, base_delay_ms=config.base_delay_ms)

    def delay_ms(self, retry_count: int) -> int:
        """Backoff before the next attempt after retry_count failures."""
        return self.base_delay_ms * 2 ** max(retry_count, 0)

    def remaining(self, retry_count: int) -> int:
        return max(self.max_retries - retry_count, 0)

    def can_retry(self, retry_count: int) -> bool:
        return retry_count < self.max_retries

    def exhausted(self, retry_count: int) -> bool:
        return not self.can_retry(retry_count)


@dataclass
class RetryInfo:
    """Retry state of one batch, as reported to operators."""
    batch_id: str
    status: BatchStatus
    retry_count: int
    max_retries: int
    remaining_attempts: int
    can_retry: bool
    next_delay_ms: Optional[int]
    last_error: Optional[str] = None
    onchain_tx_signature: Optional[str] = None

    @classmethod
    def for_batch(cls, batch: AnchorBatch, policy: RetryPolicy) -> "RetryInfo":
        # Only an anchoring batch that has not been broadcast can be resubmitted
        retriable = (
            batch.status == BatchStatus.ANCHORING
            and batch.onchain_tx_signature is None
            and policy.can_retry(batch.retry_count)
        )
        return cls(
            batch_id=batch.id,
            status=batch.status,
            retry_count=batch.retry_count,
            max_retries=policy.max_retries,
            remaining_attempts=policy.remaining(batch.retry_count),
            can_retry=retriable,
            next_delay_ms=policy.delay_ms(batch.retry_count) if retriable else None,
            last_error=batch.error_message,
            onchain_tx_signature=batch.onchain_tx_signature,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "status": self.status.value,
            "retry_count": self.retry_count,
            "max_retries": self.max_retries,
            "remaining_attempts": self.remaining_attempts,
            "can_retry": self.can_retry,
            "next_delay_ms": self.next_delay_ms,
            "last_error": self.last_error,
            "onchain_tx_signature": self.onchain_tx_signature,
        }
