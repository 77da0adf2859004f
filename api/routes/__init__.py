"""API route handlers."""

from api.routes import batches, donations, health, verify, wallet

__all__ = ["batches", "donations", "health", "verify", "wallet"]
