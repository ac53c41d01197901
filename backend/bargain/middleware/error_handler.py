"""
Global error handling middleware.

WHAT: Render request-schema and business errors as JSON responses
WHY: Clients get one error shape: error code, message, details, timestamp
HOW: FastAPI exception handlers; business errors bring their own status code
"""

from datetime import datetime
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..utils.exceptions import BusinessException
from ..utils.logger import get_logger

logger = get_logger(__name__)


def error_response(status_code: int, code: str, message: str, details: Any = None) -> JSONResponse:
    """Build the common error body."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": code,
            "message": message,
            "details": details,
            "timestamp": datetime.now().isoformat()
        }
    )


def _serializable_errors(exc: RequestValidationError) -> list[dict]:
    errors = []
    for error in exc.errors():
        item = {key: error.get(key) for key in ("type", "loc", "msg", "input")}
        if "ctx" in error:
            # ctx may hold exception instances
            item["ctx"] = {k: str(v) if isinstance(v, Exception) else v for k, v in error["ctx"].items()}
        errors.append(item)
    return errors


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """
    Request body or path did not match the schema.

    Returns 400 so that 422 stays reserved for offers the negotiation refused.
    """
    errors = _serializable_errors(exc)
    logger.warning(f"Validation error on {request.url.path}: {errors}")
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "VALIDATION_ERROR",
        "Request validation failed",
        errors
    )


async def business_exception_handler(request: Request, exc: BusinessException):
    """
    Domain error raised by an endpoint.

    404 unknown session, 409 wrong phase, 422 rejected offer or consent.
    """
    logger.warning(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


def register_exception_handlers(app: FastAPI):
    """
    Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(BusinessException, business_exception_handler)
