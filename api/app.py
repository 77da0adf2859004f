"""
FastAPI Application

Main application setup and configuration.

Usage:
    uvicorn api.app:app --reload

    # Or run directly
    python -m api.app
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.errors import (
    APIError,
    anchor_error_handler,
    api_error_handler,
    generic_error_handler,
)
from api.routes import batches, donations, health, verify, wallet
from core.schemas import AnchorException


# Configure logging; GIVEGOOD_LOG_LEVEL overrides the INFO default
logging.basicConfig(
    level=getattr(logging, os.getenv("GIVEGOOD_LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="GiveGood Anchor API",
        description="""
HTTP API for anchoring donation batches to a public ledger.

## Endpoints

- **POST /donations** - Queue a donation for the next batch
- **POST /batches** - Open a batch; **POST /batches/{id}/close** seals and submits it
- **POST /batches/{id}/finality** - Poll ledger finality
- **GET /donations/{id}/proof** - Inclusion payload for independent verification
- **POST /verify/proof** - Check a proof against a root
- **GET /wallet/status** - Anchor wallet funding
- **GET /health** - Health check
        """,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register exception handlers
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(AnchorException, anchor_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    # Include routers
    app.include_router(health.router)
    app.include_router(batches.router)
    app.include_router(donations.router)
    app.include_router(verify.router)
    app.include_router(wallet.router)

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
