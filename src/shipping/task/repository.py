"""Repository for the DeliveryTask aggregate."""

from datetime import date, datetime

from protean.exceptions import ObjectNotFoundError

from shipping.catalog.methods import DeliveryMethod
from shipping.domain import shipping
from shipping.task.task import DeliveryTask, PickupStatus, TaskStatus

# Upper bound for batch scans (one day's tasks, one pickup sweep)
SCAN_LIMIT = 5000


def _comparable(moment: datetime, reference: datetime) -> datetime:
    """Align timezone awareness of ``moment`` with ``reference``."""
    if moment.tzinfo is not None and reference.tzinfo is None:
        return moment.replace(tzinfo=None)
    if moment.tzinfo is None and reference.tzinfo is not None:
        return moment.replace(tzinfo=reference.tzinfo)
    return moment


def _oldest_first(tasks):
    return sorted(tasks, key=lambda t: (t.created_at.isoformat() if t.created_at else "", str(t.id)))


@shipping.repository(part_of=DeliveryTask)
class DeliveryTaskRepository:
    """Task queries used by dispatch, route planning and the pickup job."""

    def find_active_for_order(self, order_id: str) -> DeliveryTask | None:
        """The order's open task, if any."""
        results = self._dao.query.filter(active_order_key=str(order_id)).all()
        return results.first if results.items else None

    def find_for_order(self, order_id: str) -> list[DeliveryTask]:
        """Every task ever created for the order, oldest first."""
        results = self._dao.query.filter(order_id=str(order_id)).limit(SCAN_LIMIT).all()
        return _oldest_first(results.items)

    def get_for_order(self, order_id: str) -> DeliveryTask:
        """The open task, else the most recent closed one."""
        active = self.find_active_for_order(order_id)
        if active is not None:
            return active
        tasks = self.find_for_order(order_id)
        if not tasks:
            raise ObjectNotFoundError({"order_id": [f"No delivery task exists for order {order_id}"]})
        return tasks[-1]

    def find_pending_for_date(self, delivery_date: date) -> list[DeliveryTask]:
        """Pending self-delivery tasks planned for ``delivery_date``."""
        results = (
            self._dao.query.filter(
                status=TaskStatus.PENDING.value,
                delivery_method=DeliveryMethod.SELF_DELIVERY.value,
                planned_delivery_date=delivery_date,
            )
            .limit(SCAN_LIMIT)
            .all()
        )
        return _oldest_first(results.items)

    def find_by_route(self, route_code: str, delivery_date: date) -> list[DeliveryTask]:
        results = (
            self._dao.query.filter(route_code=route_code, planned_delivery_date=delivery_date)
            .limit(SCAN_LIMIT)
            .all()
        )
        return _oldest_first(results.items)

    def find_due_pickups(self, as_of: datetime) -> list[DeliveryTask]:
        """Pending carrier tasks whose next pickup attempt is due."""
        results = (
            self._dao.query.filter(
                status=TaskStatus.PENDING.value,
                pickup_status=PickupStatus.PENDING.value,
            )
            .limit(SCAN_LIMIT)
            .all()
        )
        due = [
            task
            for task in results.items
            if task.pickup_next_attempt_at is None or _comparable(task.pickup_next_attempt_at, as_of) <= as_of
        ]
        return _oldest_first(due)
