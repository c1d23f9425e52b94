"""Shared BDD fixtures and step definitions for the Shipping domain."""

from datetime import UTC, date, datetime

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then
from shipping.task.events import (
    CODCollected,
    DeliveryTaskCreated,
    DeliveryTaskRescheduled,
    DeliveryTaskStatusChanged,
)
from shipping.task.task import DeliveryTask

_TASK_EVENT_CLASSES = {
    "DeliveryTaskCreated": DeliveryTaskCreated,
    "DeliveryTaskStatusChanged": DeliveryTaskStatusChanged,
    "CODCollected": CODCollected,
    "DeliveryTaskRescheduled": DeliveryTaskRescheduled,
}

# Wednesday 2026-10-21, 10:00 in Bangkok
NOW = datetime(2026, 10, 21, 3, 0, tzinfo=UTC)
TUE_FRI = frozenset({1, 4})


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


def _self_delivery_task(order_id, cod_amount=0.0):
    task = DeliveryTask.create(
        order_id=order_id,
        address_id="addr-bdd-001",
        delivery_method="self_delivery",
        delivery_fee=40.0,
        cod_amount=cod_amount,
        cod_capable=True,
        planned_delivery_date=date(2026, 10, 23),
        route_code="BKK-N",
        schedule_days=TUE_FRI,
        province="Bangkok",
        district="Chatuchak",
        now=NOW,
    )
    task._events.clear()
    return task


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a pending self-delivery task", target_fixture="task")
def pending_task():
    return _self_delivery_task("ord-bdd-001")


@given(parsers.cfparse("a pending self-delivery task collecting {amount:g} baht"), target_fixture="task")
def pending_cod_task(amount):
    return _self_delivery_task("ord-bdd-002", cod_amount=amount)


@given("a planned self-delivery task", target_fixture="task")
def planned_task():
    task = _self_delivery_task("ord-bdd-003")
    task.assign_to_manifest("BKK-N:2026-10-23:veh-1", "veh-1", "drv-1", NOW)
    task._events.clear()
    return task


@given("an in-transit self-delivery task", target_fixture="task")
def in_transit_task():
    task = _self_delivery_task("ord-bdd-004")
    task.assign_to_manifest("BKK-N:2026-10-23:veh-1", "veh-1", "drv-1", NOW)
    task.mark_dispatched(NOW)
    task.mark_in_transit(NOW)
    task._events.clear()
    return task


@given("a failed self-delivery task", target_fixture="task")
def failed_task():
    task = _self_delivery_task("ord-bdd-005")
    task.assign_to_manifest("BKK-N:2026-10-23:veh-1", "veh-1", "drv-1", NOW)
    task.mark_dispatched(NOW)
    task.mark_in_transit(NOW)
    task.mark_failed("Customer not home", NOW)
    task._events.clear()
    return task


@given("a delivered self-delivery task", target_fixture="task")
def delivered_task():
    task = _self_delivery_task("ord-bdd-006")
    task.assign_to_manifest("BKK-N:2026-10-23:veh-1", "veh-1", "drv-1", NOW)
    task.mark_dispatched(NOW)
    task.mark_in_transit(NOW)
    task.mark_delivered(NOW)
    task._events.clear()
    return task


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the task status is "{status}"'))
def task_status_is(task, status):
    assert task.status == status


@then("the task action fails with a validation error")
def task_action_fails(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse("a {event_type} event is raised"))
def task_event_raised(task, event_type):
    event_cls = _TASK_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in task._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in task._events]}"


@then(parsers.cfparse("no {event_type} event is raised"))
def task_event_not_raised(task, event_type):
    event_cls = _TASK_EVENT_CLASSES[event_type]
    assert not any(isinstance(e, event_cls) for e in task._events)
