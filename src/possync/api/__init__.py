"""Reference REST backend (FastAPI)."""

from possync.api.main import create_app

__all__ = ["create_app"]
