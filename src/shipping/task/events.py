"""Delivery task events — immutable facts about a task's lifecycle.

``DeliveryTaskStatusChanged`` is the generic transition event consumed by the
order workflow; the others carry the extra detail of specific transitions.
"""

from protean.fields import Date, DateTime, Float, Identifier, Integer, String

from shipping.domain import shipping


@shipping.event(part_of="DeliveryTask")
class DeliveryTaskCreated:
    """A delivery task was created for a confirmed order."""

    __version__ = 1

    task_id = Identifier(required=True)
    order_id = Identifier(required=True)
    address_id = Identifier(required=True)
    delivery_method = String(required=True)
    route_code = String()
    carrier_code = String()
    planned_delivery_date = Date()
    delivery_fee = Float(required=True)
    cod_amount = Float(required=True)
    status = String(required=True)
    created_at = DateTime(required=True)


@shipping.event(part_of="DeliveryTask")
class DeliveryTaskStatusChanged:
    """The task moved from one status to another."""

    __version__ = 1

    task_id = Identifier(required=True)
    order_id = Identifier(required=True)
    old_status = String(required=True)
    new_status = String(required=True)
    reason = String()
    occurred_at = DateTime(required=True)


@shipping.event(part_of="DeliveryTask")
class CODCollected:
    """Cash was collected from the customer at drop-off."""

    __version__ = 1

    task_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Float(required=True)
    delivery_method = String(required=True)
    collected_at = DateTime(required=True)


@shipping.event(part_of="DeliveryTask")
class DeliveryTaskRescheduled:
    """The task's planned delivery date moved (route full, or retry)."""

    __version__ = 1

    task_id = Identifier(required=True)
    order_id = Identifier(required=True)
    old_date = Date()
    new_date = Date(required=True)
    reason = String(required=True)
    rescheduled_at = DateTime(required=True)


@shipping.event(part_of="DeliveryTask")
class PickupScheduled:
    """The carrier accepted the pickup and issued a tracking number."""

    __version__ = 1

    task_id = Identifier(required=True)
    order_id = Identifier(required=True)
    carrier_code = String(required=True)
    tracking_number = String(required=True)
    pickup_time = DateTime()
    estimated_delivery = DateTime()
    scheduled_at = DateTime(required=True)


@shipping.event(part_of="DeliveryTask")
class PickupAttemptFailed:
    """A pickup request failed; another attempt is scheduled."""

    __version__ = 1

    task_id = Identifier(required=True)
    order_id = Identifier(required=True)
    carrier_code = String(required=True)
    attempt = Integer(required=True)
    error = String(required=True)
    next_attempt_at = DateTime(required=True)


@shipping.event(part_of="DeliveryTask")
class PickupSchedulingExhausted:
    """Alert: every pickup attempt failed and the task was marked failed."""

    __version__ = 1

    task_id = Identifier(required=True)
    order_id = Identifier(required=True)
    carrier_code = String(required=True)
    attempts = Integer(required=True)
    last_error = String(required=True)
    occurred_at = DateTime(required=True)
