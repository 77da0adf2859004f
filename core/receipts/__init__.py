"""
Core Receipts Module

Receipts for the engine's relay submissions and ledger RPC calls.
"""

from .models import HTTPReceipt, Receipt, ReceiptKind, RPCReceipt
from .recorder import DEFAULT_MAX_RECEIPTS, ReceiptRecorder

__all__ = [
    "DEFAULT_MAX_RECEIPTS",
    "HTTPReceipt",
    "RPCReceipt",
    "Receipt",
    "ReceiptKind",
    "ReceiptRecorder",
]
