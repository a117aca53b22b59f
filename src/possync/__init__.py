"""Offline-first mutation queue and reconciliation for a point-of-sale client."""

__version__ = "1.0.0"
