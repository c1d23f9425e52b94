"""Application tests for UpdateTaskStatus and CancelDeliveryTask."""

from datetime import UTC, date, datetime

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError
from shipping.catalog.management import DeactivateDeliveryRoute
from shipping.errors import InvalidTransitionError, NoCoverageError
from shipping.task.creation import CreateDeliveryTask
from shipping.task.status import CancelDeliveryTask, UpdateTaskStatus
from shipping.task.task import DeliveryTask, TaskStatus

WED_MORNING = datetime(2026, 10, 21, 3, 0, tzinfo=UTC)
# Friday 2026-10-23, 15:00 in Bangkok
FRI_AFTERNOON = datetime(2026, 10, 23, 8, 0, tzinfo=UTC)


@pytest.fixture()
def task_id(define_route, bangkok_address):
    define_route()
    return current_domain.process(
        CreateDeliveryTask(order_id="ord-st-001", address_id="addr-bkk-001", requested_at=WED_MORNING),
        asynchronous=False,
    )


def _update(task_id, status, reason=None, occurred_at=FRI_AFTERNOON):
    return current_domain.process(
        UpdateTaskStatus(task_id=task_id, status=status, reason=reason, occurred_at=occurred_at),
        asynchronous=False,
    )


def _task(task_id):
    return current_domain.repository_for(DeliveryTask).get(task_id)


def _to_in_transit(task_id):
    for status in ("planned", "dispatched", "in_transit"):
        _update(task_id, status)


class TestUpdateTaskStatus:
    def test_forward_path(self, task_id):
        _to_in_transit(task_id)
        assert _update(task_id, "delivered") is True
        task = _task(task_id)
        assert task.status == TaskStatus.DELIVERED.value
        assert task.actual_delivery_time is not None

    def test_repeated_update_is_idempotent(self, task_id):
        _to_in_transit(task_id)
        before = _task(task_id)
        assert _update(task_id, "in_transit") is False
        after = _task(task_id)
        assert after.status == TaskStatus.IN_TRANSIT.value
        assert after.updated_at == before.updated_at

    def test_out_of_order_update_rejected(self, task_id):
        _to_in_transit(task_id)
        with pytest.raises(InvalidTransitionError):
            _update(task_id, "dispatched")
        assert _task(task_id).status == TaskStatus.IN_TRANSIT.value

    def test_invalid_jump_rejected(self, task_id):
        with pytest.raises(InvalidTransitionError):
            _update(task_id, "delivered")

    def test_unknown_task(self):
        with pytest.raises(ObjectNotFoundError):
            _update("no-such-task", "planned")


class TestRetry:
    def test_failed_self_delivery_retries_on_next_route_day(self, task_id):
        _to_in_transit(task_id)
        _update(task_id, "failed", reason="Customer not home")
        _update(task_id, "pending")
        task = _task(task_id)
        assert task.status == TaskStatus.PENDING.value
        assert task.retry_count == 1
        # Failed on a Friday: next Tuesday, never the same day
        assert task.planned_delivery_date == date(2026, 10, 27)
        assert task.vehicle_id is None

    def test_retry_fails_when_route_is_gone(self, task_id):
        _to_in_transit(task_id)
        _update(task_id, "failed", reason="Customer not home")
        current_domain.process(DeactivateDeliveryRoute(code="BKK-N"), asynchronous=False)
        with pytest.raises(NoCoverageError):
            _update(task_id, "pending")
        assert _task(task_id).status == TaskStatus.FAILED.value


class TestCancelDeliveryTask:
    def test_cancel_pending_task(self, task_id):
        current_domain.process(CancelDeliveryTask(task_id=task_id, reason="Customer request"), asynchronous=False)
        task = _task(task_id)
        assert task.status == TaskStatus.CANCELLED.value
        assert "Customer request" in task.notes

    def test_cancel_delivered_task_rejected(self, task_id):
        _to_in_transit(task_id)
        _update(task_id, "delivered")
        with pytest.raises(InvalidTransitionError):
            current_domain.process(CancelDeliveryTask(task_id=task_id, reason="Too late"), asynchronous=False)
