"""
Health Check Route

Simple health check endpoint for liveness probes.
"""

from fastapi import APIRouter, Depends

from api.deps import get_engine
from api.models.responses import HealthResponse
from core.schemas import CODEC_VERSION
from orchestrator.engine import AnchorEngine


router = APIRouter(tags=["health"])


def _health(engine: AnchorEngine) -> HealthResponse:
    return HealthResponse(
        ok=True,
        codec_version=CODEC_VERSION,
        ledger_mode=engine.config.ledger.mode,
        network=engine.ledger.network,
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(engine: AnchorEngine = Depends(get_engine)) -> HealthResponse:
    """
    Health check endpoint.

    Returns service status for liveness probes.
    """
    return _health(engine)


@router.get("/", response_model=HealthResponse)
async def root(engine: AnchorEngine = Depends(get_engine)) -> HealthResponse:
    """
    Root endpoint - same as health check.
    """
    return _health(engine)
