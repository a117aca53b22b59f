"""Core interfaces (ports) for dependency injection."""

from possync.core.interfaces.local_store import IEntityRepository, IMutationRepository
from possync.core.interfaces.remote_store import IRemoteStore

__all__ = [
    # Storage interfaces
    "IEntityRepository",
    "IMutationRepository",
    # Remote interfaces
    "IRemoteStore",
]
