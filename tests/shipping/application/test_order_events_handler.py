"""Application tests for OrderEventHandler — Shipping reacts to Ordering events."""

from datetime import UTC, datetime

from protean import current_domain
from shared.events.ordering import OrderCancelled
from shipping.task.creation import CreateDeliveryTask
from shipping.task.order_events import OrderEventHandler
from shipping.task.status import UpdateTaskStatus
from shipping.task.task import DeliveryTask, TaskStatus

WED_MORNING = datetime(2026, 10, 21, 3, 0, tzinfo=UTC)


def _cancelled(order_id):
    return OrderCancelled(
        order_id=order_id,
        reason="Customer changed mind",
        cancelled_by="Customer",
        cancelled_at=datetime.now(UTC),
    )


def _create(order_id):
    return current_domain.process(
        CreateDeliveryTask(order_id=order_id, address_id="addr-bkk-001", requested_at=WED_MORNING),
        asynchronous=False,
    )


class TestOrderCancelledHandler:
    def test_cancels_open_task(self, define_route, bangkok_address):
        define_route()
        task_id = _create("ord-oc-001")

        OrderEventHandler().on_order_cancelled(_cancelled("ord-oc-001"))

        task = current_domain.repository_for(DeliveryTask).get(task_id)
        assert task.status == TaskStatus.CANCELLED.value
        assert "Customer changed mind" in task.notes

    def test_no_task_is_ignored(self):
        OrderEventHandler().on_order_cancelled(_cancelled("ord-oc-none"))

    def test_delivered_task_untouched(self, define_route, bangkok_address):
        define_route()
        task_id = _create("ord-oc-002")
        for status in ("planned", "dispatched", "in_transit", "delivered"):
            current_domain.process(UpdateTaskStatus(task_id=task_id, status=status), asynchronous=False)

        OrderEventHandler().on_order_cancelled(_cancelled("ord-oc-002"))

        task = current_domain.repository_for(DeliveryTask).get(task_id)
        assert task.status == TaskStatus.DELIVERED.value
