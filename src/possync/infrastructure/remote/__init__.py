"""Remote store implementations."""

from possync.infrastructure.remote.http_store import HttpRemoteStore

__all__ = ["HttpRemoteStore"]
