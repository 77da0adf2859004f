"""
Receipt Models

A receipt records one call the engine made to the outside world: a relay
submission (HTTP) or a ledger node query (JSON-RPC). Request and response
are hashed canonically so two receipts can be compared without the bodies.

Receipts made while submitting a batch carry its id; the lifecycle copies
a receipt's summary into the batch's submitted / submit_failed events.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.crypto.hashing import hash_canonical, to_hex


ReceiptKind = Literal["http", "rpc"]


class Receipt(BaseModel):
    """Common fields of every receipt."""

    model_config = ConfigDict(extra="forbid")

    receipt_id: str
    kind: ReceiptKind
    batch_id: Optional[str] = Field(
        default=None,
        description="Batch being submitted when the call was made",
    )
    request: dict[str, Any]
    response: dict[str, Any] = Field(default_factory=dict)
    request_hash: Optional[str] = None
    response_hash: Optional[str] = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    duration_ms: Optional[float] = None
    error: Optional[str] = None

    @property
    def is_successful(self) -> bool:
        return self.error is None and bool(self.response)

    def finish(
        self,
        response: Optional[dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> None:
        """Record the outcome, timing and canonical hashes."""
        elapsed = datetime.now(timezone.utc) - self.started_at
        self.duration_ms = elapsed.total_seconds() * 1000
        if response is not None:
            self.response = response
        if error is not None:
            self.error = error
        self.request_hash = to_hex(hash_canonical(self.request))
        if self.response:
            self.response_hash = to_hex(hash_canonical(self.response))

    def summary(self) -> dict[str, Any]:
        """Compact form stored in batch event details."""
        return {
            "receipt_id": self.receipt_id,
            "kind": self.kind,
            "request_hash": self.request_hash,
            "response_hash": self.response_hash,
            "error": self.error,
        }


class HTTPReceipt(Receipt):
    """Relay submission."""

    kind: Literal["http"] = "http"
    method: str
    url: str
    status_code: Optional[int] = None


class RPCReceipt(Receipt):
    """Ledger node JSON-RPC call."""

    kind: Literal["rpc"] = "rpc"
    endpoint: str
    rpc_method: str
    network: Optional[str] = Field(
        default=None,
        description="mainnet-beta, devnet or testnet",
    )
