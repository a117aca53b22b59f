"""
Application layer - use cases and the session composition root.

Use cases coordinate core services; ``create_session`` wires infrastructure
implementations to them.
"""

from possync.application.session import PosSession, create_session
from possync.application.use_cases import CompleteSaleResult, CompleteSaleUseCase

__all__ = [
    "PosSession",
    "create_session",
    "CompleteSaleUseCase",
    "CompleteSaleResult",
]
