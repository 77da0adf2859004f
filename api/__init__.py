"""
GiveGood Anchor API (FastAPI)

HTTP API for the anchoring engine:
- /donations - Intake and per-donation proofs
- /batches - Batch lifecycle
- /verify - Stateless proof checks
- /wallet/status - Anchor wallet funding
- /health - Health check

Usage:
    uvicorn api.app:app --reload
"""

__version__ = "0.1.0"
