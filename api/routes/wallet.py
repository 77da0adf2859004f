"""
Wallet Route

Check that the anchor wallet is configured and funded before batches
are submitted.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from api.deps import get_engine
from api.models.responses import WalletStatusResponse
from orchestrator.engine import AnchorEngine


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("/status", response_model=WalletStatusResponse)
def wallet_status(engine: AnchorEngine = Depends(get_engine)) -> WalletStatusResponse:
    info = engine.wallet.describe()
    ready = bool(info.get("funded"))
    logger.info(f"Wallet status: network={engine.ledger.network} ready={ready}")
    return WalletStatusResponse(
        ready=ready,
        network=info.get("network", engine.ledger.network),
        account=info.get("account"),
        balance=info.get("balance"),
        min_balance=info.get("min_balance"),
        message="Wallet is configured and funded" if ready else "Wallet is not funded",
    )
