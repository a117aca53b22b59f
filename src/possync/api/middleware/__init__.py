"""API middleware."""

from possync.api.middleware.error_handler import ErrorHandlerMiddleware, setup_exception_handlers
from possync.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware", "ErrorHandlerMiddleware", "setup_exception_handlers"]
