"""Application use cases."""

from possync.application.use_cases.complete_sale import (
    CompleteSaleResult,
    CompleteSaleUseCase,
)

__all__ = [
    "CompleteSaleUseCase",
    "CompleteSaleResult",
]
