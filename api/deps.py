"""
API Dependencies

Dependency injection for the API. One AnchorEngine per process, built
lazily from the runtime config; tests replace it through
app.dependency_overrides[get_engine].
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from core.config.runtime import load_runtime_config
from orchestrator.engine import AnchorEngine, create_engine

logger = logging.getLogger(__name__)


_engine: Optional[AnchorEngine] = None
_engine_lock = threading.Lock()


def get_engine() -> AnchorEngine:
    """
    Process-wide engine.

    Config resolution follows load_runtime_config: givegood.yaml or
    givegood.json in the working directory, then ~/.config/givegood,
    with GIVEGOOD_* environment variables applied last.
    """
    global _engine
    with _engine_lock:
        if _engine is None:
            config = load_runtime_config()
            _engine = create_engine(config)
            logger.info(f"Created engine (ledger mode {config.ledger.mode})")
        return _engine


def set_engine(engine: Optional[AnchorEngine]) -> None:
    """Replace (or with None, reset) the process-wide engine."""
    global _engine
    with _engine_lock:
        _engine = engine
