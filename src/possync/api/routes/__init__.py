"""API route modules."""

from possync.api.routes.customers import router as customers_router
from possync.api.routes.health import router as health_router
from possync.api.routes.products import router as products_router
from possync.api.routes.sales import router as sales_router

__all__ = [
    "health_router",
    "products_router",
    "customers_router",
    "sales_router",
]
