"""Task status updates — commands and handler.

Status reports arrive from drivers, carrier webhooks and admin tooling, and
may be duplicated or arrive out of order. Re-applying the current status is a
no-op; an update behind the task's current position is rejected.
"""

from datetime import UTC, datetime, timedelta

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from shipping.catalog.snapshot import RouteCatalog
from shipping.domain import shipping
from shipping.errors import NoCoverageError
from shipping.planning.schedule import next_delivery_date
from shipping.settings import get_settings
from shipping.task.task import DeliveryTask, TaskStatus

logger = structlog.get_logger(__name__)


@shipping.command(part_of="DeliveryTask")
class UpdateTaskStatus:
    """Move a task to a new status."""

    task_id = Identifier(required=True)
    status = String(required=True, max_length=50, choices=TaskStatus)
    reason = String(max_length=500)
    occurred_at = DateTime()


@shipping.command(part_of="DeliveryTask")
class CancelDeliveryTask:
    task_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@shipping.command_handler(part_of=DeliveryTask)
class TaskStatusHandler:
    @handle(UpdateTaskStatus)
    def update_task_status(self, command) -> bool:
        repo = current_domain.repository_for(DeliveryTask)
        task = repo.get(command.task_id)
        target = TaskStatus(command.status)
        now = command.occurred_at or datetime.now(UTC)

        retry_date, schedule_days = None, None
        if target is TaskStatus.PENDING and task.status == TaskStatus.FAILED.value and task.is_self_delivery:
            retry_date, schedule_days = _next_route_day(task, now)

        changed = task.update_status(
            target,
            reason=command.reason,
            retry_date=retry_date,
            schedule_days=schedule_days,
            now=now,
        )
        if not changed:
            logger.info("Duplicate status update ignored", task_id=str(task.id), status=target.value)
            return False

        repo.add(task)
        logger.info("Task status updated", task_id=str(task.id), order_id=str(task.order_id), status=target.value)
        return True

    @handle(CancelDeliveryTask)
    def cancel_delivery_task(self, command):
        repo = current_domain.repository_for(DeliveryTask)
        task = repo.get(command.task_id)
        task.cancel(reason=command.reason)
        repo.add(task)
        logger.info("Delivery task cancelled", task_id=str(task.id), order_id=str(task.order_id))


def _next_route_day(task: DeliveryTask, now: datetime):
    """Next run of the task's route, strictly after today (local time)."""
    route = RouteCatalog.load().get(task.route_code)
    if route is None:
        raise NoCoverageError({"route_code": [f"Route {task.route_code} is no longer active; cannot retry"]})
    today = now.astimezone(get_settings().tz).date()
    return next_delivery_date(route.delivery_days, today + timedelta(days=1)), route.delivery_days
