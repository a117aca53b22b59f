"""
Dependency injection for route handlers.

The backend instance lives on ``app.state`` so each app (and each test) gets
its own data.
"""

from fastapi import Request

from possync.api.backend import InMemoryBackend


def get_backend(request: Request) -> InMemoryBackend:
    return request.app.state.backend
