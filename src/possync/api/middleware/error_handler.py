"""
Error handling for the reference API.

Domain errors map to the statuses the client's remote store classifies:
409 for duplicate keys (a repeated sale id reads as already applied), 404 for
unknown ids, 400 for rejected payloads and 500 for anything unexpected.
"""

import traceback
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from possync.api.schemas import ErrorResponse
from possync.config import get_logger
from possync.core.exceptions import (
    DuplicateKeyError,
    NotFoundError,
    PosError,
    SaleError,
    StorageError,
    ValidationError,
)

logger = get_logger(__name__)


# Map exceptions to HTTP status codes
EXCEPTION_STATUS_MAP: dict[type[Exception], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    SaleError: status.HTTP_400_BAD_REQUEST,
    DuplicateKeyError: status.HTTP_409_CONFLICT,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(exc: Exception) -> int:
    for exc_type, code in EXCEPTION_STATUS_MAP.items():
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _error_response(status_code: int, content: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content.model_dump(mode="json"))


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Converts unexpected exceptions to JSON 500 responses."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(
                "unhandled_exception",
                request_id=getattr(request.state, "request_id", None),
                path=request.url.path,
                error_type=e.__class__.__name__,
                error=str(e),
                traceback=traceback.format_exc(),
            )
            return _error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                ErrorResponse(
                    error_code=e.__class__.__name__,
                    message=str(e),
                    path=request.url.path,
                ),
            )


def setup_exception_handlers(app: FastAPI) -> None:
    """Set up FastAPI exception handlers."""

    @app.exception_handler(PosError)
    async def pos_exception_handler(request: Request, exc: PosError) -> JSONResponse:
        status_code = status_for(exc)
        logger.warning(
            "request_rejected",
            path=request.url.path,
            error_code=exc.code,
            status=status_code,
        )
        return _error_response(
            status_code,
            ErrorResponse(error_code=exc.code, message=exc.message, path=request.url.path),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Handle Pydantic validation errors."""
        errors = []
        for error in exc.errors():
            loc = " -> ".join(str(part) for part in error["loc"])
            errors.append(f"{loc}: {error['msg']}")

        return _error_response(
            422,
            ErrorResponse(
                error_code="VALIDATION_ERROR",
                message="Request validation failed",
                detail="; ".join(errors),
                path=request.url.path,
            ),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return _error_response(
            exc.status_code,
            ErrorResponse(
                error_code="NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR",
                message=str(exc.detail or "An error occurred"),
                path=request.url.path,
            ),
        )
