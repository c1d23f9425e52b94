"""Cross-domain event contracts consumed from the Ordering domain.

Shipping only listens for order cancellations: the open delivery task of a
cancelled order is cancelled too. The class is registered as an external
event via shipping.register_external_event() with the ``__type__`` string the
Ordering domain publishes, so Protean's stream deserialization resolves it.
"""

from protean.core.event import BaseEvent
from protean.fields import DateTime, Identifier, String


class OrderCancelled(BaseEvent):
    """An order was cancelled."""

    __version__ = 1

    order_id = Identifier(required=True)
    reason = String(required=True)
    cancelled_by = String(required=True)
    cancelled_at = DateTime(required=True)
