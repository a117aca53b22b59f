"""
Core sync services.

Layer-pure services that depend only on:
- possync/core/entities/*
- possync/core/interfaces/*
- possync/core/exceptions.py

NO infrastructure imports. All dependencies injected via constructor.
"""

from possync.core.services.connectivity import ConnectivityListener, ConnectivityMonitor
from possync.core.services.entity_store import EntityStore
from possync.core.services.mutation_queue import MutationQueue
from possync.core.services.reconciler import (
    DrainReport,
    Reconciler,
    ReconcilerState,
    ReconciliationError,
    SubmitResult,
)

__all__ = [
    # Connectivity
    "ConnectivityMonitor",
    "ConnectivityListener",
    # Queue
    "MutationQueue",
    # Reconciliation
    "Reconciler",
    "ReconcilerState",
    "ReconciliationError",
    "DrainReport",
    "SubmitResult",
    # Entities
    "EntityStore",
]
