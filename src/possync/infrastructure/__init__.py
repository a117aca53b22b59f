"""Infrastructure layer implementations."""

from possync.infrastructure import connectivity, remote, storage

__all__ = ["storage", "remote", "connectivity"]
