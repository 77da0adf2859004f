"""
HTTP Client Module

HTTP and JSON-RPC clients with receipt recording.
"""

from .client import HttpClient, HttpError, HttpResponse, JsonRpcClient, JsonRpcError

__all__ = [
    "HttpClient",
    "HttpError",
    "HttpResponse",
    "JsonRpcClient",
    "JsonRpcError",
]
