"""
Connectivity monitor.

Single source of truth for whether the remote store is reachable. Raw
observations are debounced so flapping links publish one event per settled
edge; listeners are notified in subscription order.
"""

import asyncio
from collections.abc import Awaitable, Callable

from possync.config import get_logger

logger = get_logger(__name__)

ConnectivityListener = Callable[[bool], Awaitable[None]]


class ConnectivityMonitor:
    """
    Tracks online/offline state and publishes transitions.

    ``report()`` records a raw observation. With a debounce window, the
    observation must hold for the whole window before it is published; each
    change restarts the window. Once observations settle on a state that differs
    from the published one, exactly one event is emitted.
    """

    def __init__(self, initial: bool = False, debounce_seconds: float = 1.0):
        self._online = initial
        self._observed = initial
        self._debounce = max(0.0, debounce_seconds)
        self._listeners: list[ConnectivityListener] = []
        self._settle_task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def is_online(self) -> bool:
        """Published connectivity state."""
        return self._online

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        """Register a transition listener. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def report(self, online: bool) -> None:
        """Record a raw connectivity observation."""
        changed = online != self._observed
        self._observed = online

        if self._debounce == 0:
            if online != self._online:
                await self._publish(online)
            return

        if not changed and self._settle_task is not None:
            return

        self._cancel_settle()
        if online != self._online:
            self._settle_task = asyncio.create_task(self._settle())
            self._tasks.add(self._settle_task)
            self._settle_task.add_done_callback(self._tasks.discard)

    async def _settle(self) -> None:
        try:
            await asyncio.sleep(self._debounce)
        except asyncio.CancelledError:
            return
        self._settle_task = None
        if self._observed != self._online:
            await self._publish(self._observed)

    async def _publish(self, online: bool) -> None:
        self._online = online
        logger.info("connectivity_changed", online=online)

        for listener in list(self._listeners):
            try:
                await listener(online)
            except Exception as e:
                logger.error(
                    "connectivity_listener_failed",
                    online=online,
                    error=str(e),
                    error_type=type(e).__name__,
                )

    def _cancel_settle(self) -> None:
        if self._settle_task is not None and not self._settle_task.done():
            self._settle_task.cancel()
        self._settle_task = None

    async def wait_settled(self) -> None:
        """Wait for pending debounce timers and the events they publish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Cancel pending debounce timers and in-flight notifications."""
        self._cancel_settle()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
