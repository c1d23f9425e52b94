"""Daily deliveries — dispatch operations dashboard view."""

from datetime import datetime

from protean.core.projector import on
from protean.fields import DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from shipping.domain import shipping
from shipping.task.events import CODCollected, DeliveryTaskCreated, DeliveryTaskStatusChanged
from shipping.task.task import DeliveryTask, TaskStatus


@shipping.projection
class DailyDeliveryStatsView:
    """Per-day counters of task activity and collected cash."""

    id = Identifier(identifier=True)
    date = String(required=True)  # ISO date string YYYY-MM-DD
    total_created = Integer(default=0)
    total_planned = Integer(default=0)
    total_delivered = Integer(default=0)
    total_failed = Integer(default=0)
    total_cancelled = Integer(default=0)
    cod_collected_total = Float(default=0.0)
    updated_at = DateTime()


_COUNTERS = {
    TaskStatus.PLANNED.value: "total_planned",
    TaskStatus.DELIVERED.value: "total_delivered",
    TaskStatus.FAILED.value: "total_failed",
    TaskStatus.CANCELLED.value: "total_cancelled",
}


def _date_key(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d") if dt else ""


def _get_or_create(date_str: str, timestamp: datetime):
    repo = current_domain.repository_for(DailyDeliveryStatsView)
    try:
        return repo.get(date_str)
    except Exception:
        return DailyDeliveryStatsView(
            id=date_str,
            date=date_str,
            total_created=0,
            total_planned=0,
            total_delivered=0,
            total_failed=0,
            total_cancelled=0,
            cod_collected_total=0.0,
            updated_at=timestamp,
        )


@shipping.projector(projector_for=DailyDeliveryStatsView, aggregates=[DeliveryTask])
class DailyDeliveryStatsProjector:
    @on(DeliveryTaskCreated)
    def on_task_created(self, event):
        view = _get_or_create(_date_key(event.created_at), event.created_at)
        view.total_created = (view.total_created or 0) + 1
        view.updated_at = event.created_at
        current_domain.repository_for(DailyDeliveryStatsView).add(view)

    @on(DeliveryTaskStatusChanged)
    def on_status_changed(self, event):
        counter = _COUNTERS.get(event.new_status)
        if counter is None:
            return
        view = _get_or_create(_date_key(event.occurred_at), event.occurred_at)
        setattr(view, counter, (getattr(view, counter) or 0) + 1)
        view.updated_at = event.occurred_at
        current_domain.repository_for(DailyDeliveryStatsView).add(view)

    @on(CODCollected)
    def on_cod_collected(self, event):
        view = _get_or_create(_date_key(event.collected_at), event.collected_at)
        view.cod_collected_total = round((view.cod_collected_total or 0.0) + event.amount, 2)
        view.updated_at = event.collected_at
        current_domain.repository_for(DailyDeliveryStatsView).add(view)
