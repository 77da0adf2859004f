"""
Ledger Collaborators

Donation persistence, ledger submission and wallet funding, behind
abstract interfaces with in-memory, fake and JSON-RPC implementations.
"""

from __future__ import annotations

from typing import Optional

from core.config.runtime import RuntimeConfig
from core.receipts import ReceiptRecorder

from .base import AlwaysFunded, BalanceWalletCheck, DonationStore, LedgerClient, WalletCheck
from .fake import FakeLedger
from .memory_store import InMemoryDonationStore
from .rpc import MAX_MEMO_BYTES, SolanaRpcLedger, build_memo, get_explorer_url, parse_memo


def build_ledger(
    config: RuntimeConfig,
    recorder: Optional[ReceiptRecorder] = None,
) -> LedgerClient:
    """Ledger client for the configured mode ("fake" or "rpc")."""
    mode = config.ledger.mode
    if mode == "fake":
        return FakeLedger(explorer_base_url=config.ledger.explorer_base_url)
    if mode == "rpc":
        return SolanaRpcLedger(config.ledger, recorder=recorder)
    raise ValueError(f"Unknown ledger mode: {mode!r}")


def build_wallet_check(config: RuntimeConfig, ledger: LedgerClient) -> WalletCheck:
    """Funding check matching the ledger; fake ledgers are always funded."""
    if isinstance(ledger, FakeLedger):
        return AlwaysFunded()
    return BalanceWalletCheck(
        ledger,
        account=config.ledger.anchor_account,
        min_balance=config.ledger.min_balance,
    )


def build_store(config: RuntimeConfig) -> DonationStore:
    """Donation store, seeded from the configured file if any."""
    if config.store.seed_file:
        return InMemoryDonationStore.from_json_file(config.store.seed_file)
    return InMemoryDonationStore()


__all__ = [
    "AlwaysFunded",
    "BalanceWalletCheck",
    "DonationStore",
    "FakeLedger",
    "InMemoryDonationStore",
    "LedgerClient",
    "MAX_MEMO_BYTES",
    "SolanaRpcLedger",
    "WalletCheck",
    "build_ledger",
    "build_memo",
    "build_store",
    "build_wallet_check",
    "get_explorer_url",
    "parse_memo",
]
