"""
API Error Handling

Standardized error responses. Engine exceptions (AnchorException) are
mapped to HTTP statuses by their error code.
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from api.models.responses import ErrorDetail, ErrorResponse
from core.schemas import AnchorException, ErrorCodes


logger = logging.getLogger(__name__)


# HTTP status per engine error code; unknown codes map to 500
STATUS_BY_CODE: dict[str, int] = {
    ErrorCodes.CODEC_ERROR: 422,
    ErrorCodes.EMPTY_BATCH: 422,
    ErrorCodes.BATCH_NOT_FOUND: 404,
    ErrorCodes.DONATION_NOT_FOUND: 404,
    ErrorCodes.DONATION_NOT_BATCHED: 409,
    ErrorCodes.BATCH_CONFLICT: 409,
    ErrorCodes.INVALID_TRANSITION: 409,
    ErrorCodes.SUBMISSION_ERROR: 502,
    ErrorCodes.RETRY_LIMIT_EXCEEDED: 502,
    ErrorCodes.WALLET_UNFUNDED: 503,
    ErrorCodes.FINALITY_TIMEOUT: 504,
}


class APIError(Exception):
    """Base API error with structured response."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            ok=False,
            error=ErrorDetail(
                code=self.code,
                message=self.message,
                details=self.details,
            ),
        )


class InvalidRequestError(APIError):
    """Invalid request parameters."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            code="INVALID_REQUEST",
            message=message,
            status_code=400,
            details=details,
        )


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle APIError exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(mode="json"),
    )


async def anchor_error_handler(request: Request, exc: AnchorException) -> JSONResponse:
    """Handle engine exceptions raised from route handlers."""
    status_code = STATUS_BY_CODE.get(exc.code, 500)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.code}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            ok=False,
            error=ErrorDetail.from_exception(exc),
        ).model_dump(mode="json"),
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            ok=False,
            error=ErrorDetail(
                code="INTERNAL_ERROR",
                message="An unexpected error occurred",
                details={"type": type(exc).__name__},
            ),
        ).model_dump(mode="json"),
    )
