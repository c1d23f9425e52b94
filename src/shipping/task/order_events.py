"""Inbound cross-domain event handler — Shipping reacts to Ordering events.

Listens for OrderCancelled events from the Ordering domain to cancel the
order's open delivery task. Task creation stays an explicit command
(CreateDeliveryTask), because the ordering events do not carry the delivery
address or COD amount.

Cross-domain events are imported from shared.events module and registered
as external events via shipping.register_external_event().
"""

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle
from shared.events.ordering import OrderCancelled

from shipping.domain import shipping
from shipping.task.task import DeliveryTask

logger = structlog.get_logger(__name__)

# Register external events so Protean can deserialize them
shipping.register_external_event(OrderCancelled, "Ordering.OrderCancelled.v1")


@shipping.event_handler(part_of=DeliveryTask, stream_category="ordering::order")
class OrderEventHandler:
    """Reacts to events from the Ordering domain."""

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        """Cancel the open delivery task of a cancelled order."""
        repo = current_domain.repository_for(DeliveryTask)
        task = repo.find_active_for_order(str(event.order_id))
        if task is None:
            logger.info("No open delivery task for cancelled order", order_id=str(event.order_id))
            return

        previous_status = task.status
        task.cancel(reason=f"Order cancelled: {event.reason}")
        repo.add(task)
        logger.info(
            "Delivery task cancelled due to order cancellation",
            task_id=str(task.id),
            order_id=str(event.order_id),
            previous_status=previous_status,
        )
