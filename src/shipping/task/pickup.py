"""Carrier pickup booking.

A new carrier task is sent to its carrier as soon as ``DeliveryTaskCreated``
is handled: inline in development and tests, through the Engine in
production. ``ProcessPickupQueue`` is the sweep that a background job or
cron (``manage.py process-pickups``) runs to retry what failed. Failures
back off exponentially; the attempt count and next attempt time live on the
task, so a restarted worker picks up where the last one stopped. A carrier
outage fails its own batch only and never aborts the run.
"""

from collections import defaultdict
from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import DateTime
from protean.utils.globals import current_domain

from shipping.carrier import get_carrier
from shipping.domain import shipping
from shipping.errors import ExternalServiceError
from shipping.settings import get_settings
from shipping.task.events import DeliveryTaskCreated
from shipping.task.task import DeliveryTask, PickupStatus, TaskStatus

logger = structlog.get_logger(__name__)


def book_pickups(tasks: list[DeliveryTask], as_of: datetime) -> dict:
    """Send ``tasks`` to their carriers, one request per carrier, and persist the outcome."""
    settings = get_settings()
    repo = current_domain.repository_for(DeliveryTask)
    carrier = get_carrier()

    by_carrier = defaultdict(list)
    for task in tasks:
        by_carrier[task.carrier_code].append(task)

    summary = {"scheduled": 0, "retrying": 0, "exhausted": 0}
    for carrier_code in sorted(by_carrier):
        batch = by_carrier[carrier_code]
        batch_error = None
        try:
            results = carrier.schedule_pickup(carrier_code, [t.pickup_request() for t in batch])
            results_by_task = {r.task_id: r for r in results}
        except ExternalServiceError as exc:
            batch_error = str(exc)
            results_by_task = {}
            logger.warning(
                "Carrier pickup request failed",
                carrier_code=carrier_code,
                tasks=len(batch),
                error=batch_error,
            )

        for task in batch:
            result = results_by_task.get(str(task.id))
            if result is not None and result.success:
                task.confirm_pickup(
                    tracking_number=result.tracking_number,
                    pickup_time=result.pickup_time,
                    estimated_delivery=result.estimated_delivery,
                    now=as_of,
                )
                summary["scheduled"] += 1
            else:
                error = batch_error or (result.error if result else None) or "Carrier returned no result"
                if task.record_pickup_failure(error, settings.pickup_max_attempts, settings.pickup_backoff, as_of):
                    summary["retrying"] += 1
                else:
                    summary["exhausted"] += 1
                    logger.error(
                        "Pickup scheduling exhausted",
                        task_id=str(task.id),
                        order_id=str(task.order_id),
                        carrier_code=carrier_code,
                        attempts=task.pickup_attempts,
                        error=error,
                    )
            repo.add(task)
    return summary


@shipping.command(part_of="DeliveryTask")
class ProcessPickupQueue:
    """Request to book pickups for all due carrier tasks."""

    as_of = DateTime()  # Optional: process as of this time (defaults to now)


@shipping.command_handler(part_of=DeliveryTask)
class ProcessPickupQueueHandler:
    @handle(ProcessPickupQueue)
    def process_pickup_queue(self, command) -> dict:
        as_of = command.as_of or datetime.now(UTC)
        due = current_domain.repository_for(DeliveryTask).find_due_pickups(as_of)
        summary = book_pickups(due, as_of)
        logger.info("Pickup queue processed", as_of=str(as_of), **summary)
        return summary


@shipping.event_handler(part_of=DeliveryTask)
class PickupBookingHandler:
    """Books the first pickup for a carrier task right after it is created."""

    @handle(DeliveryTaskCreated)
    def book_first_pickup(self, event: DeliveryTaskCreated) -> None:
        if not event.carrier_code or not get_settings().pickup_on_create:
            return

        task = current_domain.repository_for(DeliveryTask).get(str(event.task_id))
        # Cancelled, or already booked by a sweep, before this event was handled
        if task.status != TaskStatus.PENDING.value or task.pickup_status != PickupStatus.PENDING.value:
            return

        summary = book_pickups([task], as_of=event.created_at or datetime.now(UTC))
        logger.info("First pickup attempt", task_id=str(task.id), carrier_code=task.carrier_code, **summary)
