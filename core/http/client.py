"""
HTTP Client

Provides a unified HTTP client with receipt recording for auditability,
and a thin JSON-RPC 2.0 client on top of it for ledger node calls.
"""

from __future__ import annotations

import itertools
import json as jsonlib
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Optional, TYPE_CHECKING

import requests

if TYPE_CHECKING:
    from core.receipts import ReceiptRecorder


logger = logging.getLogger(__name__)


@dataclass
class HttpResponse:
    """
    Response from an HTTP request.
    """
    status_code: int
    content: bytes
    headers: dict[str, str] = field(default_factory=dict)
    url: str = ""
    elapsed_ms: float = 0.0
    receipt_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        """Check if request was successful (2xx status)."""
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        """Get response content as text."""
        return self.content.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Parse response as JSON."""
        return jsonlib.loads(self.content)

    def raise_for_status(self) -> None:
        """Raise exception if status is not 2xx."""
        if not self.ok:
            raise HttpError(
                f"HTTP {self.status_code}: {self.text[:200]}",
                status_code=self.status_code,
                response=self,
            )


class HttpError(Exception):
    """HTTP request error (transport failure or non-2xx status)."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[HttpResponse] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class JsonRpcError(Exception):
    """Error object returned by a JSON-RPC server."""

    def __init__(self, method: str, code: Optional[int], message: str, data: Any = None) -> None:
        super().__init__(f"{method}: RPC error {code}: {message}")
        self.method = method
        self.code = code
        self.message = message
        self.data = data


class HttpClient:
    """
    HTTP client with receipt recording.

    Usage:
        client = HttpClient(recorder=receipt_recorder)

        response = client.post("https://relay.example.com/memo", json={...})
        if response.ok:
            data = response.json()
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        recorder: Optional["ReceiptRecorder"] = None,
        default_headers: Optional[dict[str, str]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Initialize HTTP client.

        Args:
            timeout: Default request timeout in seconds
            recorder: Receipt recorder for audit logging
            default_headers: Headers to include in all requests
            session: Pre-built requests session (tests inject one)
        """
        self.timeout = timeout
        self.recorder = recorder
        self.default_headers = default_headers or {}
        self._session = session

    def _get_session(self) -> requests.Session:
        """Lazy-create the requests session."""
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update(self.default_headers)
        return self._session

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[dict[str, str]] = None,
        params: Optional[dict[str, Any]] = None,
        json: Optional[Any] = None,
        timeout: Optional[float] = None,
        batch_id: Optional[str] = None,
    ) -> HttpResponse:
        """
        Make an HTTP request.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Request URL
            headers: Additional headers
            params: Query parameters
            json: Request body (JSON)
            timeout: Request timeout
            batch_id: Batch the request belongs to, copied onto its receipt

        Returns:
            HttpResponse with status, content, and headers

        Raises:
            HttpError: On transport failure
        """
        session = self._get_session()
        effective_timeout = timeout or self.timeout

        request_headers = dict(self.default_headers)
        if headers:
            request_headers.update(headers)

        receipt = None
        if self.recorder:
            receipt = self.recorder.start_http(
                method=method,
                url=url,
                headers=request_headers,
                params=params,
                body=json,
                batch_id=batch_id,
            )

        try:
            response = session.request(
                method=method,
                url=url,
                headers=request_headers,
                params=params,
                json=json,
                timeout=effective_timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"{method} {url} failed: {e}")
            if receipt and self.recorder:
                self.recorder.complete(receipt, error=str(e))
            raise HttpError(str(e)) from e

        result = HttpResponse(
            status_code=response.status_code,
            content=response.content,
            headers=dict(response.headers),
            url=str(response.url),
            elapsed_ms=response.elapsed.total_seconds() * 1000 if response.elapsed else 0.0,
        )

        if receipt and self.recorder:
            self.recorder.complete(
                receipt,
                response={
                    "status_code": response.status_code,
                    "content_length": len(response.content),
                    "content_type": response.headers.get("content-type"),
                },
                status_code=response.status_code,
            )
            result.receipt_id = receipt.receipt_id

        return result

    def get(
        self,
        url: str,
        *,
        headers: Optional[dict[str, str]] = None,
        params: Optional[dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> HttpResponse:
        """Make a GET request."""
        return self.request("GET", url, headers=headers, params=params, timeout=timeout)

    def post(
        self,
        url: str,
        *,
        headers: Optional[dict[str, str]] = None,
        params: Optional[dict[str, Any]] = None,
        json: Optional[Any] = None,
        timeout: Optional[float] = None,
        batch_id: Optional[str] = None,
    ) -> HttpResponse:
        """Make a POST request."""
        return self.request(
            "POST", url,
            headers=headers,
            params=params,
            json=json,
            timeout=timeout,
            batch_id=batch_id,
        )

    def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            self._session.close()
            self._session = None

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()


class JsonRpcClient:
    """
    JSON-RPC 2.0 client over HttpClient.

    Each call is recorded as an RPC receipt when a recorder is attached.

    Usage:
        rpc = JsonRpcClient("https://api.devnet.solana.com")
        balance = rpc.call("getBalance", [pubkey])
    """

    def __init__(
        self,
        endpoint: str,
        *,
        http: Optional[HttpClient] = None,
        recorder: Optional["ReceiptRecorder"] = None,
        network: Optional[str] = None,
        timeout: float = 30.0,
    ) -> None:
        self.endpoint = endpoint
        self.network = network
        self.recorder = recorder
        # Receipts are recorded at the RPC level, not per HTTP request
        self.http = http or HttpClient(timeout=timeout)
        self._ids = itertools.count(1)
        self._id_lock = threading.Lock()

    def _next_id(self) -> int:
        with self._id_lock:
            return next(self._ids)

    def call(self, method: str, params: Optional[list[Any]] = None) -> Any:
        """
        Invoke a JSON-RPC method and return its ``result``.

        Raises:
            HttpError: On transport failure or non-2xx status
            JsonRpcError: If the server answers with an error object
        """
        payload = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": method,
            "params": params or [],
        }

        receipt = None
        if self.recorder:
            receipt = self.recorder.start_rpc(
                endpoint=self.endpoint,
                rpc_method=method,
                params=payload["params"],
                network=self.network,
            )

        try:
            response = self.http.post(self.endpoint, json=payload)
            response.raise_for_status()
            body = response.json()
        except (HttpError, ValueError) as e:
            if receipt and self.recorder:
                self.recorder.complete(receipt, error=str(e))
            if isinstance(e, HttpError):
                raise
            raise HttpError(f"{method}: invalid JSON-RPC response: {e}") from e

        if not isinstance(body, dict):
            if receipt and self.recorder:
                self.recorder.complete(receipt, error="non-object response")
            raise HttpError(f"{method}: invalid JSON-RPC response: {body!r}")

        error = body.get("error")
        if error:
            if receipt and self.recorder:
                self.recorder.complete(receipt, response=body, error=str(error.get("message")))
            raise JsonRpcError(
                method,
                error.get("code"),
                str(error.get("message", "unknown error")),
                error.get("data"),
            )

        if receipt and self.recorder:
            self.recorder.complete(receipt, response=body)
        return body.get("result")

    def close(self) -> None:
        self.http.close()
