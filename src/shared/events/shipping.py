"""Cross-domain event contracts for Shipping domain events.

These classes define the event shape for consumption by other domains
(e.g., the Ordering domain to mark an order shipped or delivered, the
Payments domain to reconcile collected cash). They are registered as external
events via domain.register_external_event() with matching __type__ strings so
Protean's stream deserialization works correctly.

The source-of-truth events are in src/shipping/task/events.py and
src/shipping/routing/events.py.
"""

from protean.core.event import BaseEvent
from protean.fields import Date, DateTime, Float, Identifier, Integer, String, Text


class DeliveryTaskCreated(BaseEvent):
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


class DeliveryTaskStatusChanged(BaseEvent):
    """A delivery task moved from one status to another."""

    __version__ = 1

    task_id = Identifier(required=True)
    order_id = Identifier(required=True)
    old_status = String(required=True)
    new_status = String(required=True)
    reason = String()
    occurred_at = DateTime(required=True)


class CODCollected(BaseEvent):
    """Cash was collected from the customer at drop-off."""

    __version__ = 1

    task_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Float(required=True)
    delivery_method = String(required=True)
    collected_at = DateTime(required=True)


class RoutePlanned(BaseEvent):
    """A vehicle manifest was built for a route and day."""

    __version__ = 1

    manifest_id = String(required=True)
    route_code = String(required=True)
    delivery_date = Date(required=True)
    vehicle_id = Identifier(required=True)
    driver_id = Identifier(required=True)
    task_ids = Text(required=True)  # JSON list, in stop order
    stop_count = Integer(required=True)
    planned_at = DateTime(required=True)
