"""
Solana JSON-RPC Ledger

LedgerClient backed by a Solana JSON-RPC node for reads and a signing
relay for writes. The relay holds the anchor wallet key, builds the SPL
Memo transaction from the memo text and returns its signature; this
process never sees key material.

Memo Payload (frozen, compact JSON, at most 566 bytes):
    {"type":"GIVEGOOD_BATCH","version":"1.0","batchId":"...","merkleRoot":"<hex>"}
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from core.config.runtime import LedgerConfig
from core.crypto.hashing import to_hex
from core.http.client import HttpClient, HttpError, JsonRpcClient, JsonRpcError
from core.receipts import ReceiptRecorder
from core.schemas import (
    ErrorCodes,
    FinalityConfirmed,
    FinalityFailed,
    FinalityPending,
    FinalityStatus,
    SubmissionError,
)

from .base import LedgerClient


logger = logging.getLogger(__name__)


MEMO_TYPE = "GIVEGOOD_BATCH"
MEMO_VERSION = "1.0"
MAX_MEMO_BYTES = 566

# Solana commitment levels, weakest first
_COMMITMENT_ORDER = ("processed", "confirmed", "finalized")


def build_memo(merkle_root: bytes | str, batch_id: Optional[str] = None) -> str:
    """
    Build the memo text anchored on-chain for a batch.

    Raises:
        ValueError: If the memo would exceed the memo program's size limit
    """
    root_hex = merkle_root if isinstance(merkle_root, str) else to_hex(merkle_root)
    memo: dict[str, Any] = {"type": MEMO_TYPE, "version": MEMO_VERSION}
    if batch_id is not None:
        memo["batchId"] = batch_id
    memo["merkleRoot"] = root_hex

    text = json.dumps(memo, separators=(",", ":"))
    size = len(text.encode("utf-8"))
    if size > MAX_MEMO_BYTES:
        raise ValueError(f"Memo data too large: {size} bytes (max {MAX_MEMO_BYTES})")
    return text


def parse_memo(text: str) -> dict[str, Any]:
    """Parse memo text back into its fields, checking type and version."""
    memo = json.loads(text)
    if not isinstance(memo, dict) or memo.get("type") != MEMO_TYPE:
        raise ValueError("Not a batch anchor memo")
    if memo.get("version") != MEMO_VERSION:
        raise ValueError(f"Unsupported memo version: {memo.get('version')}")
    return memo


def get_explorer_url(signature: str, network: str, base_url: str = "https://solscan.io") -> str:
    """Explorer link; the cluster query is omitted on mainnet."""
    url = f"{base_url}/tx/{signature}"
    if network != "mainnet-beta":
        url += f"?cluster={network}"
    return url


def _reached(status: Optional[str], commitment: str) -> bool:
    if status not in _COMMITMENT_ORDER:
        return False
    wanted = commitment if commitment in _COMMITMENT_ORDER else "confirmed"
    return _COMMITMENT_ORDER.index(status) >= _COMMITMENT_ORDER.index(wanted)


class SolanaRpcLedger(LedgerClient):
    """
    LedgerClient over Solana JSON-RPC plus a signing relay.

    Args:
        config: Ledger section of the runtime config
        recorder: Receipt recorder shared by the RPC and relay clients
        rpc: Pre-built JSON-RPC client (tests inject one)
        http: Pre-built HTTP client for the relay (tests inject one)
    """

    def __init__(
        self,
        config: LedgerConfig,
        *,
        recorder: Optional[ReceiptRecorder] = None,
        rpc: Optional[JsonRpcClient] = None,
        http: Optional[HttpClient] = None,
    ) -> None:
        self.config = config
        self.network = config.network
        self.recorder = recorder
        self.rpc = rpc or JsonRpcClient(
            config.rpc_url,
            recorder=recorder,
            network=config.network,
            timeout=config.timeout,
        )
        self.http = http or HttpClient(timeout=config.timeout, recorder=recorder)
        self._relay_headers: dict[str, str] = {}
        if config.relay_api_key:
            self._relay_headers["Authorization"] = f"Bearer {config.relay_api_key}"

    def submit(self, payload: bytes, *, batch_id: Optional[str] = None) -> str:
        if len(payload) != 32:
            raise SubmissionError(
                f"Payload must be 32 bytes, got {len(payload)}",
                batch_id=batch_id,
                retryable=False,
            )
        if not self.config.relay_url:
            raise SubmissionError(
                "No signing relay configured (GIVEGOOD_RELAY_URL)",
                batch_id=batch_id,
                retryable=False,
            )

        try:
            memo = build_memo(payload, batch_id)
        except ValueError as e:
            raise SubmissionError(str(e), batch_id=batch_id, retryable=False) from e

        root_hex = to_hex(payload)
        body = {
            "memo": memo,
            "account": self.config.anchor_account,
            "network": self.network,
            "commitment": self.config.commitment,
            # Stable per (batch, root); the relay deduplicates on it
            "idempotencyKey": f"{batch_id or 'batch'}:{root_hex}",
        }

        logger.info(f"Submitting root {root_hex[:16]}... for batch {batch_id} via relay")
        try:
            response = self.http.post(
                self.config.relay_url,
                headers=self._relay_headers,
                json=body,
                batch_id=batch_id,
            )
        except HttpError as e:
            raise SubmissionError(f"Relay unreachable: {e}", batch_id=batch_id) from e

        if not response.ok:
            # 4xx other than 429 is a refusal, not a transient fault
            retryable = response.status_code >= 500 or response.status_code == 429
            raise SubmissionError(
                f"Relay rejected submission: HTTP {response.status_code}: {response.text[:200]}",
                batch_id=batch_id,
                details={"status_code": response.status_code},
                retryable=retryable,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise SubmissionError(f"Relay returned invalid JSON: {e}", batch_id=batch_id) from e

        signature = data.get("signature") if isinstance(data, dict) else None
        if not signature:
            raise SubmissionError(
                "Relay response carries no transaction signature",
                batch_id=batch_id,
                details={"response": data},
            )
        logger.info(f"Batch {batch_id} broadcast: {signature}")
        return str(signature)

    def get_finality(self, tx_signature: str) -> FinalityStatus:
        try:
            result = self.rpc.call(
                "getSignatureStatuses",
                [[tx_signature], {"searchTransactionHistory": True}],
            )
        except (HttpError, JsonRpcError) as e:
            raise SubmissionError(
                f"Finality lookup failed: {e}",
                code=ErrorCodes.SUBMISSION_ERROR,
                details={"tx_signature": tx_signature},
            ) from e

        values = (result or {}).get("value") or [None]
        status = values[0]
        if status is None:
            return FinalityPending()

        if status.get("err") is not None:
            return FinalityFailed(reason=f"Transaction error: {status['err']}")

        if not _reached(status.get("confirmationStatus"), self.config.commitment):
            return FinalityPending()

        return self._confirmed(tx_signature, status)

    def _confirmed(self, tx_signature: str, status: dict[str, Any]) -> FinalityConfirmed:
        slot = status.get("slot") or 0
        timestamp = None
        fee = None
        try:
            tx = self.rpc.call(
                "getTransaction",
                [
                    tx_signature,
                    {
                        "commitment": self.config.commitment,
                        "maxSupportedTransactionVersion": 0,
                        "encoding": "json",
                    },
                ],
            )
        except (HttpError, JsonRpcError) as e:
            # Slot is already known from the status; timestamp and fee stay unset
            logger.warning(f"getTransaction failed for {tx_signature}: {e}")
            tx = None

        if tx:
            slot = tx.get("slot") or slot
            block_time = tx.get("blockTime")
            if block_time:
                timestamp = datetime.fromtimestamp(block_time, tz=timezone.utc)
            fee = (tx.get("meta") or {}).get("fee")

        return FinalityConfirmed(slot=slot, timestamp=timestamp, fee=fee)

    def get_balance(self, account: Optional[str] = None) -> int:
        account = account or self.config.anchor_account
        if not account:
            raise ValueError("No anchor account configured (GIVEGOOD_ANCHOR_ACCOUNT)")
        result = self.rpc.call("getBalance", [account, {"commitment": self.config.commitment}])
        if isinstance(result, dict):
            return int(result.get("value", 0))
        return int(result or 0)

    def explorer_url(self, tx_signature: str) -> Optional[str]:
        return get_explorer_url(tx_signature, self.network, self.config.explorer_base_url)

    def close(self) -> None:
        self.rpc.close()
        self.http.close()
