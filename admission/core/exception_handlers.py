"""Global exception handlers.

Every error leaves the service in the same envelope,
``{"error": {"code", "message", "request_id", "details"?}}``, and nothing
from an unexpected exception (type, text, traceback) reaches the client.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from admission.core.errors import AppError
from admission.core.logging import get_request_id

logger = logging.getLogger(__name__)


def _error_response(status_code: int, code: str, message: str, details=None) -> JSONResponse:
    error = {"code": code, "message": message, "request_id": get_request_id()}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an ``AppError`` with the status declared by its class."""
    logger.error(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": exc.http_status,
            "request_path": request.url.path,
        },
    )
    return _error_response(exc.http_status, exc.code, exc.message, exc.details)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback for anything else: log the detail, answer with a generic 500."""
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )
    return _error_response(
        500,
        "internal_server_error",
        "An unexpected error occurred. Please try again later.",
    )


def setup_exception_handlers(app) -> None:
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
