"""Connectivity monitor implementations."""

from possync.infrastructure.connectivity.probe import ProbeConnectivityMonitor

__all__ = ["ProbeConnectivityMonitor"]
