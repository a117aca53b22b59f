"""Unit tests for Reconciler."""

from unittest.mock import AsyncMock

import pytest

from possync.core.entities import (
    CreateMutation,
    DeleteMutation,
    EntityType,
    UpdateMutation,
)
from possync.core.exceptions import PermanentRemoteError, TransientRemoteError
from possync.core.services import Reconciler, ReconcilerState

TEMP = 10**12


def _customer_create(name: str) -> CreateMutation:
    return CreateMutation(
        entity_type=EntityType.CUSTOMER, payload={"name": name, "phone": "555"}
    )


class TestSubmit:
    """Tests for the submit() fast path and queueing."""

    async def test_offline_submit_is_queued(self, reconciler, remote, queue):
        result = await reconciler.submit(_customer_create("Ana"))

        assert result.sent is False
        assert len(queue) == 1
        assert remote.calls == []

    async def test_online_submit_sends_immediately(self, reconciler, remote, monitor, queue):
        await monitor.report(True)

        result = await reconciler.submit(_customer_create("Ana"))

        assert result.sent is True
        assert result.record["id"] == 1
        assert len(queue) == 0
        assert reconciler.state is ReconcilerState.IDLE

    async def test_transient_failure_on_fast_path_queues_and_stalls(
        self, reconciler, remote, monitor, queue
    ):
        await monitor.report(True)
        remote.offline = True

        result = await reconciler.submit(_customer_create("Ana"))

        assert result.sent is False
        assert len(queue) == 1
        assert reconciler.state is ReconcilerState.STALLED

    async def test_stalled_submit_only_queues(self, reconciler, remote, monitor, queue):
        """While stalled, new work waits behind the queued tail."""
        await monitor.report(True)
        remote.offline = True
        await reconciler.submit(_customer_create("Ana"))
        remote.offline = False

        await reconciler.submit(_customer_create("Ben"))

        assert len(queue) == 2
        assert remote.calls == []
        assert monitor.is_online is False

        await monitor.report(True)

        assert len(queue) == 0
        assert reconciler.state is ReconcilerState.IDLE

    async def test_transient_failure_reports_offline(self, reconciler, remote, monitor):
        """A failed fast path drops the monitor offline so recovery is a new edge."""
        await monitor.report(True)
        remote.offline = True

        await reconciler.submit(_customer_create("Ana"))

        assert monitor.is_online is False

    async def test_recovery_after_transient_failure_drains(
        self, reconciler, remote, monitor, queue, backend
    ):
        await monitor.report(True)
        remote.offline = True
        await reconciler.submit(_customer_create("Ana"))

        remote.offline = False
        await monitor.report(True)
        result = await reconciler.submit(_customer_create("Ben"))

        assert result.sent is True
        assert len(queue) == 0
        assert [c.name for c in backend.list_customers()] == ["Ana", "Ben"]
        assert reconciler.state is ReconcilerState.IDLE

    async def test_permanent_failure_on_fast_path_propagates(self, reconciler, remote, monitor, queue):
        await monitor.report(True)
        remote.reject_when(lambda op, arg: op == "create_customer")

        with pytest.raises(PermanentRemoteError):
            await reconciler.submit(_customer_create("Ana"))

        assert len(queue) == 0

    async def test_sale_update_is_rejected(self, reconciler, monitor):
        await monitor.report(True)

        with pytest.raises(PermanentRemoteError):
            await reconciler.submit(
                UpdateMutation(entity_type=EntityType.SALE, entity_id=1, payload={})
            )


class TestDrain:
    """Tests for drain()."""

    async def test_replays_in_enqueue_order(self, reconciler, remote, monitor, backend):
        backend.create_product({"name": "Tea", "barcode": "T1", "price": 3.99, "stock": 10})
        for stock in (9, 8, 7):
            await reconciler.submit(
                UpdateMutation(entity_type=EntityType.PRODUCT, entity_id=1, payload={"stock": stock})
            )

        await monitor.report(True)

        assert [arg[1]["stock"] for op, arg in remote.calls] == [9, 8, 7]
        assert backend.products[1].stock == 7
        assert reconciler.state is ReconcilerState.IDLE

    async def test_empty_drain_is_noop(self, reconciler, remote):
        report = await reconciler.drain()

        assert report.applied == []
        assert report.state is ReconcilerState.IDLE
        assert remote.calls == []

    async def test_transient_failure_stalls_and_keeps_tail(
        self, reconciler, remote, monitor, queue
    ):
        for name in ("Ana", "Ben"):
            await reconciler.submit(_customer_create(name))
        remote.offline = True

        await monitor.report(True)

        assert reconciler.state is ReconcilerState.STALLED
        assert len(queue) == 2

        remote.offline = False
        report = await reconciler.retry()

        assert len(report.applied) == 2
        assert reconciler.state is ReconcilerState.IDLE
        assert len(queue) == 0

    async def test_next_online_edge_resumes_stalled_drain(self, reconciler, remote, monitor, queue):
        await reconciler.submit(_customer_create("Ana"))
        remote.offline = True
        await monitor.report(True)
        await monitor.report(False)
        remote.offline = False

        await monitor.report(True)

        assert len(queue) == 0
        assert reconciler.state is ReconcilerState.IDLE

    async def test_permanent_failure_is_reported_and_skipped(
        self, reconciler, remote, monitor, queue
    ):
        errors = []
        reconciler.on_error(errors.append)
        for name in ("Ana", "Bad", "Cleo"):
            await reconciler.submit(_customer_create(name))
        remote.reject_when(lambda op, arg: op == "create_customer" and arg["name"] == "Bad")

        await monitor.report(True)

        assert [arg["name"] for op, arg in remote.calls] == ["Ana", "Bad", "Cleo"]
        assert len(queue) == 0
        assert len(errors) == 1
        assert errors[0].mutation.payload["name"] == "Bad"
        assert reconciler.errors == errors

    async def test_already_applied_counts_as_success(self, reconciler, remote, monitor, queue):
        """Deleting a row that is already gone dequeues without an error."""
        await reconciler.submit(DeleteMutation(entity_type=EntityType.CUSTOMER, entity_id=99))

        report = await reconciler.drain()

        assert report.errors == []
        assert len(queue) == 0

    async def test_create_without_id_in_response_is_permanent(self, queue, monitor):
        remote = AsyncMock()
        remote.create_product.return_value = {}
        reconciler = Reconciler(queue, remote, monitor)
        reconciler.bind(AsyncMock())
        await queue.enqueue(
            CreateMutation(entity_type=EntityType.PRODUCT, payload={"id": TEMP}, temp_id=TEMP)
        )

        report = await reconciler.drain()

        assert len(report.errors) == 1
        assert len(queue) == 0

    async def test_create_payload_sent_without_temp_id(self, queue, monitor):
        remote = AsyncMock()
        remote.create_product.return_value = {"id": 42}
        entity_store = AsyncMock()
        reconciler = Reconciler(queue, remote, monitor)
        reconciler.bind(entity_store)
        await queue.enqueue(
            CreateMutation(
                entity_type=EntityType.PRODUCT,
                payload={"id": TEMP, "name": "Tea"},
                temp_id=TEMP,
            )
        )

        await reconciler.drain()

        remote.create_product.assert_awaited_once_with({"name": "Tea"})
        entity_store.remap_identifier.assert_awaited_once_with(EntityType.PRODUCT, TEMP, 42)

    async def test_reentrant_drain_is_coalesced(self, queue, monitor):
        remote = AsyncMock()
        reconciler = Reconciler(queue, remote, monitor)
        nested = []

        async def update_product(product_id, payload):
            nested.append(await reconciler.drain())
            return {"id": product_id}

        remote.update_product.side_effect = update_product
        await queue.enqueue(
            UpdateMutation(entity_type=EntityType.PRODUCT, entity_id=1, payload={"stock": 1})
        )

        report = await reconciler.drain()

        assert nested[0].coalesced is True
        assert len(report.applied) == 1
        remote.update_product.assert_awaited_once()

    async def test_storage_failure_stalls_and_propagates(self, queue, monitor, mutation_repository):
        remote = AsyncMock()
        remote.update_product.return_value = {"id": 1}
        reconciler = Reconciler(queue, remote, monitor)
        await queue.enqueue(
            UpdateMutation(entity_type=EntityType.PRODUCT, entity_id=1, payload={"stock": 1})
        )
        mutation_repository.remove = AsyncMock(side_effect=OSError("disk full"))

        with pytest.raises(OSError):
            await reconciler.drain()

        assert reconciler.state is ReconcilerState.STALLED
        assert len(queue) == 1

    async def test_transient_from_remote_mock(self, queue, monitor):
        remote = AsyncMock()
        remote.delete_customer.side_effect = TransientRemoteError("delete customer", "timeout")
        reconciler = Reconciler(queue, remote, monitor)
        await queue.enqueue(DeleteMutation(entity_type=EntityType.CUSTOMER, entity_id=3))

        report = await reconciler.drain()

        assert report.state is ReconcilerState.STALLED
        assert report.applied == []
