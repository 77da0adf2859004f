"""
Receipt Recorder

Bounded, thread-safe log of the engine's ledger and relay calls. The API
process keeps one recorder for its lifetime, so only the newest
max_receipts receipts are retained.
"""

from __future__ import annotations

import threading
import uuid
from collections import deque
from typing import Any, Optional

from core.crypto.hashing import hash_canonical, to_hex

from .models import HTTPReceipt, Receipt, ReceiptKind, RPCReceipt


DEFAULT_MAX_RECEIPTS = 500

# Header values never written into a receipt
_SECRET_HEADERS = frozenset({"authorization", "x-api-key"})


def receipt_id_for(kind: ReceiptKind, request: dict[str, Any]) -> str:
    """
    rc_{kind}_{request hash prefix}_{nonce}

    Identical requests (repeated status polls) share the hash prefix.
    """
    prefix = to_hex(hash_canonical(request))[:12]
    return f"rc_{kind}_{prefix}_{uuid.uuid4().hex[:8]}"


def redact_headers(headers: dict[str, str]) -> dict[str, str]:
    return {
        name: "***" if name.lower() in _SECRET_HEADERS else value
        for name, value in headers.items()
    }


class ReceiptRecorder:
    """
    Usage:
        recorder = ReceiptRecorder(max_receipts=100)

        receipt = recorder.start_rpc(endpoint=url, rpc_method="getBalance")
        ...
        recorder.complete(receipt, response=body)

        recorder.latest(batch_id="b-1")
    """

    def __init__(self, max_receipts: int = DEFAULT_MAX_RECEIPTS) -> None:
        if max_receipts < 1:
            raise ValueError(f"max_receipts must be positive, got {max_receipts}")
        self.max_receipts = max_receipts
        self._receipts: deque[Receipt] = deque(maxlen=max_receipts)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._receipts)

    def start_http(
        self,
        *,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        params: Optional[dict[str, Any]] = None,
        body: Optional[Any] = None,
        batch_id: Optional[str] = None,
    ) -> HTTPReceipt:
        request = {
            "method": method,
            "url": url,
            "headers": redact_headers(headers or {}),
            "params": params or {},
            "body": body,
        }
        return HTTPReceipt(
            receipt_id=receipt_id_for("http", request),
            method=method,
            url=url,
            request=request,
            batch_id=batch_id,
        )

    def start_rpc(
        self,
        *,
        endpoint: str,
        rpc_method: str,
        params: Optional[list[Any]] = None,
        network: Optional[str] = None,
    ) -> RPCReceipt:
        request = {
            "endpoint": endpoint,
            "method": rpc_method,
            "params": params or [],
            "network": network,
        }
        return RPCReceipt(
            receipt_id=receipt_id_for("rpc", request),
            endpoint=endpoint,
            rpc_method=rpc_method,
            network=network,
            request=request,
        )

    def complete(
        self,
        receipt: Receipt,
        *,
        response: Optional[dict[str, Any]] = None,
        error: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> Receipt:
        """Finish a receipt and append it, evicting the oldest past the limit."""
        receipt.finish(response=response, error=error)
        if status_code is not None and isinstance(receipt, HTTPReceipt):
            receipt.status_code = status_code
        with self._lock:
            self._receipts.append(receipt)
        return receipt

    def get_receipts(self, batch_id: Optional[str] = None) -> list[Receipt]:
        """Retained receipts, oldest first; only one batch's when batch_id is given."""
        with self._lock:
            receipts = list(self._receipts)
        if batch_id is None:
            return receipts
        return [r for r in receipts if r.batch_id == batch_id]

    def latest(self, batch_id: str) -> Optional[Receipt]:
        """Newest retained receipt of a batch."""
        with self._lock:
            for receipt in reversed(self._receipts):
                if receipt.batch_id == batch_id:
                    return receipt
        return None

    def clear(self) -> None:
        with self._lock:
            self._receipts.clear()
