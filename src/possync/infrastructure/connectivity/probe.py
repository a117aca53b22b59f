"""Connectivity monitor fed by periodic health probes."""

import asyncio

from possync.config import get_logger
from possync.core.interfaces import IRemoteStore
from possync.core.services.connectivity import ConnectivityMonitor

logger = get_logger(__name__)


class ProbeConnectivityMonitor(ConnectivityMonitor):
    """
    Polls the remote store's health endpoint and reports the result.

    Platform network-change signals can still be fed in through ``report()``;
    the probe only adds a periodic observation.
    """

    def __init__(
        self,
        remote: IRemoteStore,
        interval: float = 5.0,
        initial: bool = False,
        debounce_seconds: float = 1.0,
    ):
        super().__init__(initial=initial, debounce_seconds=debounce_seconds)
        self._remote = remote
        self._interval = interval
        self._probe_task: asyncio.Task[None] | None = None

    async def probe(self) -> bool:
        """Run one health check and report it."""
        online = await self._remote.check_health()
        await self.report(online)
        return online

    def start(self) -> None:
        """Start polling in the background."""
        if self._probe_task is None or self._probe_task.done():
            self._probe_task = asyncio.create_task(self._run())
            logger.info("connectivity_probe_started", interval=self._interval)

    async def _run(self) -> None:
        while True:
            try:
                await self.probe()
            except Exception as e:
                logger.error("connectivity_probe_failed", error=str(e))
            await asyncio.sleep(self._interval)

    async def close(self) -> None:
        if self._probe_task is not None:
            self._probe_task.cancel()
            await asyncio.gather(self._probe_task, return_exceptions=True)
            self._probe_task = None
            logger.info("connectivity_probe_stopped")
        await super().close()
