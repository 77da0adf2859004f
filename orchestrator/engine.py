"""
Engine Wiring

Composes store, ledger, wallet check, lifecycle controller and
verification service from a RuntimeConfig. The API and CLI both go
through these factories.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from core.config.runtime import RuntimeConfig
from core.ledger import (
    DonationStore,
    FakeLedger,
    InMemoryDonationStore,
    LedgerClient,
    WalletCheck,
    build_ledger,
    build_store,
    build_wallet_check,
)
from core.receipts import ReceiptRecorder

from orchestrator.lifecycle import BatchLifecycleController
from orchestrator.verification import VerificationService


logger = logging.getLogger(__name__)


@dataclass
class AnchorEngine:
    """Everything needed to run and verify anchor batches."""
    config: RuntimeConfig
    store: DonationStore
    ledger: LedgerClient
    wallet: WalletCheck
    controller: BatchLifecycleController
    verifier: VerificationService
    recorder: ReceiptRecorder = field(default_factory=ReceiptRecorder)


def create_engine(
    config: Optional[RuntimeConfig] = None,
    *,
    store: Optional[DonationStore] = None,
    ledger: Optional[LedgerClient] = None,
    wallet: Optional[WalletCheck] = None,
) -> AnchorEngine:
    """
    Build an engine from configuration.

    Explicit collaborators take precedence over the configured ones.
    """
    config = config or RuntimeConfig()
    recorder = ReceiptRecorder(max_receipts=config.ledger.receipt_limit)
    store = store or build_store(config)
    ledger = ledger or build_ledger(config, recorder)
    wallet = wallet or build_wallet_check(config, ledger)

    controller = BatchLifecycleController(store, ledger, wallet, config, recorder=recorder)
    verifier = VerificationService(store, ledger)
    logger.info(f"Engine ready: ledger={config.ledger.mode} network={ledger.network}")
    return AnchorEngine(
        config=config,
        store=store,
        ledger=ledger,
        wallet=wallet,
        controller=controller,
        verifier=verifier,
        recorder=recorder,
    )


def create_test_engine(config: Optional[RuntimeConfig] = None) -> AnchorEngine:
    """Engine on an empty in-memory store and a fake ledger."""
    return create_engine(
        config or RuntimeConfig(),
        store=InMemoryDonationStore(),
        ledger=FakeLedger(),
    )
