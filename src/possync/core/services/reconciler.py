"""
Reconciler: replays queued mutations against the remote store.

State machine::

    IDLE -> DRAINING -> IDLE      (queue emptied)
    IDLE -> DRAINING -> STALLED   (transient remote failure)
    STALLED -> DRAINING           (next online edge or manual retry)

A transient failure also reports the store unreachable to the connectivity
monitor, so recovery is announced as a new online edge.

Mutations are replayed one at a time in sequence order. The queue head is
re-read after every step, so work enqueued during a drain is picked up by the
same drain.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from possync.config import get_logger
from possync.core.entities import (
    CreateMutation,
    DeleteMutation,
    EntityType,
    Mutation,
    UpdateMutation,
)
from possync.core.exceptions import (
    AlreadyAppliedError,
    ConfigurationError,
    PermanentRemoteError,
    PosError,
    TransientRemoteError,
)
from possync.core.interfaces import IRemoteStore
from possync.core.services.connectivity import ConnectivityMonitor
from possync.core.services.mutation_queue import MutationQueue

if TYPE_CHECKING:
    from possync.core.services.entity_store import EntityStore

logger = get_logger(__name__)


class ReconcilerState(str, Enum):
    """Drain lifecycle states."""

    IDLE = "idle"
    DRAINING = "draining"
    STALLED = "stalled"


@dataclass
class ReconciliationError:
    """A mutation dropped because the remote store rejected it."""

    mutation: Mutation
    error: PosError
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class DrainReport:
    """Outcome of a single drain."""

    state: ReconcilerState
    applied: list[Mutation] = field(default_factory=list)
    errors: list[ReconciliationError] = field(default_factory=list)
    coalesced: bool = False  # another drain was already running


@dataclass
class SubmitResult:
    """Outcome of submitting a mutation."""

    sent: bool  # False when the mutation was queued
    record: dict[str, Any] = field(default_factory=dict)


ErrorListener = Callable[[ReconciliationError], None]


class Reconciler:
    """Drains the mutation queue and keeps identifiers consistent."""

    def __init__(
        self,
        queue: MutationQueue,
        remote: IRemoteStore,
        monitor: ConnectivityMonitor,
    ):
        self._queue = queue
        self._remote = remote
        self._monitor = monitor
        self._entity_store: "EntityStore | None" = None

        self._state = ReconcilerState.IDLE
        self._draining = False
        self._error_listeners: list[ErrorListener] = []
        self.errors: list[ReconciliationError] = []

        self._unsubscribe = monitor.subscribe(self._on_connectivity_change)

    @property
    def state(self) -> ReconcilerState:
        return self._state

    @property
    def queue(self) -> MutationQueue:
        return self._queue

    def bind(self, entity_store: "EntityStore") -> None:
        """Attach the entity store that receives identifier rewrites."""
        self._entity_store = entity_store

    def on_error(self, listener: ErrorListener) -> None:
        """Register a listener for reconciliation errors as they occur."""
        self._error_listeners.append(listener)

    def close(self) -> None:
        self._unsubscribe()

    def _can_send_now(self) -> bool:
        return (
            self._monitor.is_online
            and self._state is ReconcilerState.IDLE
            and not self._draining
            and not self._queue
        )

    async def submit(self, mutation: Mutation) -> SubmitResult:
        """
        Deliver a mutation now if possible, otherwise queue it.

        Raises:
            PermanentRemoteError: The remote store rejected an immediate send.
        """
        if self._can_send_now():
            try:
                record = await self._send(mutation)
                new_id = self._assigned_id(mutation, record)
            except AlreadyAppliedError:
                record, new_id = {}, None
            except TransientRemoteError as e:
                logger.warning(
                    "submit_deferred",
                    mutation_id=mutation.id,
                    kind=mutation.kind,
                    entity_type=mutation.entity_type.value,
                    error=str(e),
                )
                await self._queue.enqueue(mutation)
                self._state = ReconcilerState.STALLED
                await self._report_unreachable()
                return SubmitResult(sent=False)

            if new_id is not None:
                await self._remap(mutation, new_id)
            logger.info(
                "mutation_sent",
                kind=mutation.kind,
                entity_type=mutation.entity_type.value,
                entity_id=new_id if new_id is not None else mutation.target_id,
            )
            return SubmitResult(sent=True, record=record)

        await self._queue.enqueue(mutation)
        if self._monitor.is_online and self._state is ReconcilerState.IDLE:
            # Online but work is already pending (e.g. restored after a restart).
            # The mutation is durable now; a failing drain stalls and is retried.
            try:
                await self.drain()
            except Exception as e:
                logger.error(
                    "drain_failed_after_enqueue",
                    mutation_id=mutation.id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
        return SubmitResult(sent=False)

    async def retry(self) -> DrainReport:
        """Manual retry trigger."""
        logger.info("drain_retry_requested", state=self._state.value)
        return await self.drain()

    async def drain(self) -> DrainReport:
        """Replay pending mutations in order until empty or stalled."""
        if self._draining:
            logger.debug("drain_coalesced", pending=len(self._queue))
            return DrainReport(state=self._state, coalesced=True)

        self._draining = True
        self._state = ReconcilerState.DRAINING
        report = DrainReport(state=self._state)
        logger.info("drain_started", pending=len(self._queue))

        try:
            while (mutation := self._queue.head()) is not None:
                try:
                    record = await self._send(mutation)
                    new_id = self._assigned_id(mutation, record)
                except AlreadyAppliedError:
                    logger.info(
                        "mutation_already_applied",
                        mutation_id=mutation.id,
                        sequence=mutation.sequence,
                    )
                    new_id = None
                except TransientRemoteError as e:
                    self._state = ReconcilerState.STALLED
                    logger.warning(
                        "drain_stalled",
                        mutation_id=mutation.id,
                        sequence=mutation.sequence,
                        pending=len(self._queue),
                        error=str(e),
                    )
                    await self._report_unreachable()
                    break
                except PermanentRemoteError as e:
                    await self._queue.dequeue(mutation.id)
                    self._report(report, mutation, e)
                    continue

                if new_id is not None:
                    await self._remap(mutation, new_id)
                await self._queue.dequeue(mutation.id)
                report.applied.append(mutation)
            else:
                self._state = ReconcilerState.IDLE
        except Exception:
            # Local storage failures are fatal for this drain.
            self._state = ReconcilerState.STALLED
            raise
        finally:
            self._draining = False

        report.state = self._state
        logger.info(
            "drain_finished",
            state=self._state.value,
            applied=len(report.applied),
            errors=len(report.errors),
            pending=len(self._queue),
        )
        return report

    async def _report_unreachable(self) -> None:
        """
        Tell the monitor the remote store is unreachable.

        The published state drops to offline, so the next successful check is
        a fresh online edge that resumes the stalled drain.
        """
        if self._monitor.is_online:
            await self._monitor.report(False)

    async def _on_connectivity_change(self, online: bool) -> None:
        if online and (self._queue or self._state is ReconcilerState.STALLED):
            await self.drain()

    def _report(
        self, report: DrainReport, mutation: Mutation, error: PosError
    ) -> None:
        entry = ReconciliationError(mutation=mutation, error=error)
        report.errors.append(entry)
        self.errors.append(entry)
        logger.error(
            "mutation_rejected",
            mutation_id=mutation.id,
            sequence=mutation.sequence,
            kind=mutation.kind,
            entity_type=mutation.entity_type.value,
            entity_id=mutation.target_id,
            error=error.message,
        )
        for listener in list(self._error_listeners):
            listener(entry)

    @staticmethod
    def _assigned_id(mutation: Mutation, record: dict[str, Any]) -> int | None:
        """Server id for a create that was issued with a temporary id."""
        if not isinstance(mutation, CreateMutation) or mutation.temp_id is None:
            return None
        new_id = record.get("id")
        if new_id is None:
            raise PermanentRemoteError(
                f"create {mutation.entity_type.value}",
                "response did not include an id",
            )
        return int(new_id)

    async def _remap(self, mutation: Mutation, new_id: int) -> None:
        old_id: int = mutation.temp_id  # type: ignore[union-attr,assignment]
        if self._entity_store is None:
            raise ConfigurationError("Reconciler has no entity store bound")
        await self._entity_store.remap_identifier(mutation.entity_type, old_id, new_id)
        await self._queue.rewrite_identifier(mutation.entity_type, old_id, new_id)

    async def _send(self, mutation: Mutation) -> dict[str, Any]:
        """Dispatch a mutation to the matching remote store call."""
        remote = self._remote
        entity_type = mutation.entity_type

        if isinstance(mutation, CreateMutation):
            if entity_type is EntityType.SALE:
                return await remote.create_sale(mutation.payload)
            payload = {k: v for k, v in mutation.payload.items() if k != "id"}
            if entity_type is EntityType.PRODUCT:
                return await remote.create_product(payload)
            return await remote.create_customer(payload)

        if isinstance(mutation, UpdateMutation):
            if entity_type is EntityType.PRODUCT:
                return await remote.update_product(mutation.entity_id, mutation.payload)
            if entity_type is EntityType.CUSTOMER:
                return await remote.update_customer(mutation.entity_id, mutation.payload)

        if isinstance(mutation, DeleteMutation):
            if entity_type is EntityType.PRODUCT:
                await remote.delete_or_zero_stock_product(mutation.entity_id)
                return {}
            if entity_type is EntityType.CUSTOMER:
                await remote.delete_customer(mutation.entity_id)
                return {}

        raise PermanentRemoteError(
            f"{mutation.kind} {entity_type.value}", "sales are immutable"
        )
