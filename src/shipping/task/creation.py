"""Delivery task creation — command and handler.

Called by the order workflow once an order is confirmed. Picks the best
delivery option for the customer's address (or the method the caller asked
for) and records a pending task. Carrier pickups are not booked here: the
``DeliveryTaskCreated`` handler in ``pickup.py`` makes the first attempt once
the task is stored, so an unreachable carrier never fails task creation.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from shipping.address import get_address_book
from shipping.catalog.methods import DeliveryMethod
from shipping.domain import shipping
from shipping.errors import DeliveryConflictError, InvalidCODError, NoCoverageError
from shipping.planning.options import DeliveryOption, DeliveryOptionPlanner
from shipping.settings import get_settings
from shipping.task.task import DeliveryTask

logger = structlog.get_logger(__name__)


@shipping.command(part_of="DeliveryTask")
class CreateDeliveryTask:
    """Create the delivery task for a confirmed order."""

    order_id = Identifier(required=True)
    address_id = Identifier(required=True)
    cod_amount = Float(default=0.0, min_value=0.0)
    delivery_method = String(max_length=50, choices=DeliveryMethod)  # Optional override
    requested_at = DateTime()


def _conflict(order_id) -> DeliveryConflictError:
    return DeliveryConflictError({"order_id": [f"Order {order_id} already has an active delivery task"]})


def select_option(options: list[DeliveryOption], method: str | None) -> DeliveryOption:
    """The top-ranked option, or the one for the requested method."""
    if not method:
        return options[0]
    for option in options:
        if option.method == method:
            return option
    raise NoCoverageError({"delivery_method": [f"{method} does not serve this address"]})


@shipping.command_handler(part_of=DeliveryTask)
class CreateDeliveryTaskHandler:
    @handle(CreateDeliveryTask)
    def create_delivery_task(self, command):
        repo = current_domain.repository_for(DeliveryTask)
        if repo.find_active_for_order(command.order_id) is not None:
            raise _conflict(command.order_id)

        now = command.requested_at or datetime.now(UTC)
        cod_amount = command.cod_amount or 0.0
        settings = get_settings()

        address = get_address_book().get_by_id(str(command.address_id))
        planner = DeliveryOptionPlanner.from_snapshots(settings)
        option = select_option(planner.options_for(address, cod_amount, now), command.delivery_method)

        if cod_amount > 0 and not option.cod_capable:
            raise InvalidCODError({"cod_amount": [f"{option.method} cannot collect cash on delivery"]})

        route = planner.routes.get(option.route_code)
        task = DeliveryTask.create(
            order_id=str(command.order_id),
            address_id=str(command.address_id),
            delivery_method=option.method,
            delivery_fee=option.fee,
            cod_amount=cod_amount,
            cod_capable=option.cod_capable,
            planned_delivery_date=option.planned_date,
            estimated_delivery_time=option.estimated_delivery,
            route_code=option.route_code,
            schedule_days=route.delivery_days if route is not None else None,
            province=address.province,
            district=address.district,
            subdistrict=address.subdistrict,
            max_retries=settings.task_max_retries,
            now=now,
        )

        # The unique active_order_key settles a race the lookup above missed
        try:
            repo.add(task)
        except ValidationError as exc:
            if "active_order_key" in (exc.messages or {}):
                raise _conflict(command.order_id) from exc
            raise

        logger.info(
            "Delivery task created",
            task_id=str(task.id),
            order_id=str(command.order_id),
            delivery_method=option.method,
            planned_delivery_date=str(option.planned_date),
            delivery_fee=option.fee,
        )
        return str(task.id)
