"""Tests for the DeliveryTask lifecycle state machine."""

from datetime import UTC, date, datetime

import pytest
from protean.exceptions import ValidationError
from shipping.errors import InvalidTransitionError
from shipping.task.events import CODCollected, DeliveryTaskRescheduled, DeliveryTaskStatusChanged
from shipping.task.task import DeliveryTask, TaskStatus

NOW = datetime(2026, 10, 21, 3, 0, tzinfo=UTC)
TUE_FRI = frozenset({1, 4})


def _self_task(cod_amount=0.0, max_retries=2):
    task = DeliveryTask.create(
        order_id="ord-001",
        address_id="addr-001",
        delivery_method="self_delivery",
        delivery_fee=40.0,
        cod_amount=cod_amount,
        cod_capable=True,
        planned_delivery_date=date(2026, 10, 23),
        route_code="BKK-N",
        schedule_days=TUE_FRI,
        max_retries=max_retries,
        now=NOW,
    )
    task._events.clear()
    return task


def _carrier_task():
    task = DeliveryTask.create(
        order_id="ord-002",
        address_id="addr-002",
        delivery_method="flash",
        delivery_fee=60.0,
        cod_amount=0.0,
        cod_capable=True,
        planned_delivery_date=date(2026, 10, 22),
        now=NOW,
    )
    task._events.clear()
    return task


def _walk(task, *statuses):
    for status in statuses:
        task.update_status(status, now=NOW)
    return task


def _in_transit(task):
    task.assign_to_manifest("BKK-N:2026-10-23:veh-1", "veh-1", "drv-1", NOW)
    return _walk(task, TaskStatus.DISPATCHED, TaskStatus.IN_TRANSIT)


class TestCreation:
    def test_new_task_is_pending_and_holds_order_key(self):
        task = _self_task()
        assert task.status == TaskStatus.PENDING.value
        assert task.active_order_key == "ord-001"
        assert task.pickup_status == "not_required"

    def test_carrier_task_enters_pickup_queue(self):
        task = _carrier_task()
        assert task.carrier_code == "flash"
        assert task.route_code is None
        assert task.pickup_status == "pending"
        assert task.pickup_next_attempt_at == NOW


class TestForwardPath:
    def test_full_self_delivery_path(self):
        task = _in_transit(_self_task())
        task.update_status(TaskStatus.DELIVERED, now=NOW)
        assert task.status == TaskStatus.DELIVERED.value
        assert task.actual_pickup_time == NOW
        assert task.actual_delivery_time == NOW
        assert task.is_terminal
        assert task.active_order_key == f"closed:{task.id}"

    def test_each_transition_raises_status_changed(self):
        task = _in_transit(_self_task())
        changes = [(e.old_status, e.new_status) for e in task._events if isinstance(e, DeliveryTaskStatusChanged)]
        assert changes == [("pending", "planned"), ("planned", "dispatched"), ("dispatched", "in_transit")]

    def test_cod_collected_on_delivery(self):
        task = _in_transit(_self_task(cod_amount=750.0))
        task.mark_delivered(NOW)
        collected = [e for e in task._events if isinstance(e, CODCollected)]
        assert len(collected) == 1
        assert collected[0].amount == 750.0

    def test_no_cod_event_without_cash(self):
        task = _in_transit(_self_task())
        task.mark_delivered(NOW)
        assert not any(isinstance(e, CODCollected) for e in task._events)


class TestRejectedTransitions:
    def test_skipping_ahead_rejected(self):
        task = _self_task()
        with pytest.raises(InvalidTransitionError) as exc:
            task.update_status(TaskStatus.IN_TRANSIT, now=NOW)
        assert "Cannot transition" in str(exc.value)

    def test_stale_update_rejected(self):
        task = _in_transit(_self_task())
        with pytest.raises(InvalidTransitionError) as exc:
            task.update_status(TaskStatus.DISPATCHED, now=NOW)
        assert "Stale update" in str(exc.value)

    def test_delivered_is_terminal(self):
        task = _in_transit(_self_task())
        task.mark_delivered(NOW)
        with pytest.raises(InvalidTransitionError):
            task.cancel("too late", NOW)

    def test_cancelled_is_terminal(self):
        task = _self_task()
        task.cancel("customer request", NOW)
        with pytest.raises(InvalidTransitionError):
            task.update_status(TaskStatus.PLANNED, now=NOW)


class TestDuplicates:
    def test_same_status_is_a_no_op(self):
        task = _in_transit(_self_task())
        task._events.clear()
        assert task.update_status(TaskStatus.IN_TRANSIT, now=NOW) is False
        assert task._events == []
        assert task.status == TaskStatus.IN_TRANSIT.value


class TestFailureAndRetry:
    def test_failed_task_with_retries_left_is_not_terminal(self):
        task = _in_transit(_self_task())
        task.mark_failed("Customer not home", NOW)
        assert task.status == TaskStatus.FAILED.value
        assert not task.is_terminal
        assert task.active_order_key == "ord-001"
        assert "Customer not home" in task.notes

    def test_retry_reschedules_and_clears_assignment(self):
        task = _in_transit(_self_task())
        task.mark_failed("Customer not home", NOW)
        task.update_status(TaskStatus.PENDING, retry_date=date(2026, 10, 27), schedule_days=TUE_FRI, now=NOW)
        assert task.status == TaskStatus.PENDING.value
        assert task.retry_count == 1
        assert task.planned_delivery_date == date(2026, 10, 27)
        assert task.manifest_id is None
        assert task.vehicle_id is None
        assert any(isinstance(e, DeliveryTaskRescheduled) for e in task._events)

    def test_retry_must_land_on_a_route_day(self):
        task = _in_transit(_self_task())
        task.mark_failed("Customer not home", NOW)
        with pytest.raises(ValidationError) as exc:
            task.retry(retry_date=date(2026, 10, 28), schedule_days=TUE_FRI, now=NOW)
        assert "planned_delivery_date" in str(exc.value)
        assert task.status == TaskStatus.FAILED.value

    def test_failure_after_last_retry_is_terminal(self):
        task = _self_task(max_retries=1)
        _in_transit(task)
        task.mark_failed("first", NOW)
        task.retry(retry_date=date(2026, 10, 27), schedule_days=TUE_FRI, now=NOW)
        _in_transit(task)
        task.mark_failed("second", NOW)
        assert task.is_terminal
        assert task.active_order_key == f"closed:{task.id}"
        with pytest.raises(InvalidTransitionError):
            task.retry(retry_date=date(2026, 10, 30), schedule_days=TUE_FRI, now=NOW)

    def test_carrier_retry_returns_to_pickup_queue(self):
        task = _carrier_task()
        task.confirm_pickup("FLASH-1", now=NOW)
        _walk(task, TaskStatus.DISPATCHED, TaskStatus.IN_TRANSIT)
        task.mark_failed("Address not found", NOW)
        task.retry(now=NOW)
        assert task.status == TaskStatus.PENDING.value
        assert task.tracking_number is None
        assert task.pickup_status == "pending"
        assert task.pickup_attempts == 0


class TestCancellation:
    @pytest.mark.parametrize("steps", [(), (TaskStatus.PLANNED,)])
    def test_cancel_before_dispatch(self, steps):
        task = _walk(_self_task(), *steps)
        task.cancel("Order cancelled", NOW)
        assert task.status == TaskStatus.CANCELLED.value
        assert task.active_order_key == f"closed:{task.id}"

    def test_cancel_stops_pickup_attempts(self):
        task = _carrier_task()
        task.cancel("Order cancelled", NOW)
        assert task.pickup_status == "not_required"
        assert task.pickup_next_attempt_at is None
