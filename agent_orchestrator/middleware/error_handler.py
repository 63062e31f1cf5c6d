"""
Exception handlers.

Every error body has the same shape: {error, message, details, correlation_id},
so clients can quote the correlation id when reporting a failed run.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse

from ..core.config import settings

logger = logging.getLogger(__name__)


def error_response(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    details: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> ORJSONResponse:
    return ORJSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "details": details,
            "correlation_id": getattr(request.state, "correlation_id", None),
        },
        headers=headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    """
    Turn request validation errors into a 422 listing each bad field.

    Field paths are dotted and relative to the body, e.g. "options.logs".
    """
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning(f"Validation error on {request.url.path}: {errors}")

    return error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation Error",
        "The request data failed validation",
        errors,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> ORJSONResponse:
    detail = exc.detail
    if isinstance(detail, dict):
        return error_response(
            request,
            exc.status_code,
            detail.get("error", "Error"),
            detail.get("message", ""),
            detail,
            getattr(exc, "headers", None),
        )
    return error_response(request, exc.status_code, str(detail), str(detail), headers=getattr(exc, "headers", None))


async def generic_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    """Last resort: log with traceback and hide internals unless DEBUG is on."""
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)

    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal Server Error",
        "An unexpected error occurred",
        str(exc) if settings.DEBUG else "Please contact support if this persists",
    )
