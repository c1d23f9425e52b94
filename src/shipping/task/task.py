"""DeliveryTask aggregate (CQRS) — one order's journey to the customer.

A task is created once per confirmed order, is never deleted, and moves
through a fixed lifecycle. Self-delivery tasks are fulfilled by the own fleet
(route + vehicle + driver); carrier tasks are handed to a third party
(carrier + tracking number). A task is never both.

State Machine:
    PENDING → PLANNED → DISPATCHED → IN_TRANSIT → {DELIVERED, FAILED}
    FAILED → PENDING                       (retry, while retries remain)
    any non-terminal → CANCELLED
    PENDING → FAILED                       (system: pickup scheduling exhausted)

Terminal: DELIVERED, CANCELLED, and FAILED once retries are exhausted.

``active_order_key`` holds the order id while the task is open and a closed
per-task key afterwards. The field is unique, so storage itself refuses a
second open task for the same order.
"""

from collections.abc import Callable, Iterable
from datetime import UTC, date, datetime, timedelta
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, Date, DateTime, Float, Identifier, Integer, String, Text

from shipping.carrier.port import PickupRequest
from shipping.catalog.methods import DeliveryMethod
from shipping.domain import shipping
from shipping.errors import InvalidTransitionError
from shipping.task.events import (
    CODCollected,
    DeliveryTaskCreated,
    DeliveryTaskRescheduled,
    DeliveryTaskStatusChanged,
    PickupAttemptFailed,
    PickupScheduled,
    PickupSchedulingExhausted,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class TaskStatus(Enum):
    PENDING = "pending"
    PLANNED = "planned"
    DISPATCHED = "dispatched"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PickupStatus(Enum):
    NOT_REQUIRED = "not_required"
    PENDING = "pending"
    SCHEDULED = "scheduled"
    EXHAUSTED = "exhausted"


_VALID_TRANSITIONS = {
    TaskStatus.PENDING: {TaskStatus.PLANNED, TaskStatus.CANCELLED},
    TaskStatus.PLANNED: {TaskStatus.DISPATCHED, TaskStatus.CANCELLED},
    TaskStatus.DISPATCHED: {TaskStatus.IN_TRANSIT, TaskStatus.CANCELLED},
    TaskStatus.IN_TRANSIT: {TaskStatus.DELIVERED, TaskStatus.FAILED, TaskStatus.CANCELLED},
    TaskStatus.FAILED: {TaskStatus.PENDING, TaskStatus.CANCELLED},
    TaskStatus.DELIVERED: set(),  # terminal
    TaskStatus.CANCELLED: set(),  # terminal
}

# Position on the forward path; an update behind the current position is stale
_PROGRESS = {
    TaskStatus.PENDING: 0,
    TaskStatus.PLANNED: 1,
    TaskStatus.DISPATCHED: 2,
    TaskStatus.IN_TRANSIT: 3,
    TaskStatus.DELIVERED: 4,
    TaskStatus.FAILED: 4,
}

_MAX_EVENT_TEXT = 255


def _clip(text: str | None) -> str | None:
    return text[:_MAX_EVENT_TEXT] if text else text


@shipping.aggregate
class DeliveryTask:
    order_id = Identifier(required=True)
    address_id = Identifier(required=True)
    active_order_key = String(required=True, max_length=100, unique=True)
    delivery_method = String(required=True, max_length=50, choices=DeliveryMethod)
    route_code = String(max_length=50)
    province = String(max_length=100)
    district = String(max_length=100)
    subdistrict = String(max_length=100)

    # Internal fulfillment
    vehicle_id = Identifier()
    driver_id = Identifier()
    manifest_id = String(max_length=150)

    # External fulfillment
    carrier_code = String(max_length=50)
    tracking_number = String(max_length=100)

    cod_capable = Boolean(default=False)
    planned_delivery_date = Date()
    estimated_delivery_time = DateTime()
    actual_pickup_time = DateTime()
    actual_delivery_time = DateTime()
    delivery_fee = Float(default=0.0, min_value=0.0)
    cod_amount = Float(default=0.0, min_value=0.0)
    status = String(choices=TaskStatus, default=TaskStatus.PENDING.value)
    retry_count = Integer(default=0, min_value=0)
    max_retries = Integer(default=2, min_value=0)

    # Carrier pickup retry state, persisted so retries survive restarts
    pickup_status = String(choices=PickupStatus, default=PickupStatus.NOT_REQUIRED.value)
    pickup_attempts = Integer(default=0, min_value=0)
    pickup_next_attempt_at = DateTime()
    pickup_last_error = String(max_length=500)
    pickup_scheduled_at = DateTime()

    notes = Text()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def single_fulfillment_path(self):
        internal = any([self.vehicle_id, self.driver_id, self.manifest_id])
        external = any([self.carrier_code, self.tracking_number])
        if internal and external:
            raise ValidationError(
                {"assignment": ["A task is either assigned to a vehicle or handed to a carrier, never both"]}
            )

    @invariant.post
    def assignment_matches_method(self):
        if self.delivery_method == DeliveryMethod.SELF_DELIVERY.value:
            if not self.route_code:
                raise ValidationError({"route_code": ["Self-delivery tasks need a delivery route"]})
        elif self.carrier_code != self.delivery_method:
            raise ValidationError({"carrier_code": ["Carrier tasks must be handed to the carrier of their method"]})

    @invariant.post
    def cod_only_on_capable_methods(self):
        if (self.cod_amount or 0) > 0 and not self.cod_capable:
            raise ValidationError({"cod_amount": [f"{self.delivery_method} cannot collect cash on delivery"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        order_id: str,
        address_id: str,
        delivery_method: str,
        delivery_fee: float,
        cod_amount: float,
        cod_capable: bool,
        planned_delivery_date: date,
        estimated_delivery_time: datetime | None = None,
        route_code: str | None = None,
        schedule_days: Iterable[int] | None = None,
        province: str | None = None,
        district: str | None = None,
        subdistrict: str | None = None,
        max_retries: int = 2,
        now: datetime | None = None,
    ):
        """Create a pending task from the chosen delivery option."""
        now = now or datetime.now(UTC)
        self_delivery = delivery_method == DeliveryMethod.SELF_DELIVERY.value
        if self_delivery and schedule_days is not None:
            _assert_scheduled(planned_delivery_date, schedule_days)

        task = cls(
            order_id=order_id,
            address_id=address_id,
            active_order_key=str(order_id),
            delivery_method=delivery_method,
            route_code=route_code if self_delivery else None,
            carrier_code=None if self_delivery else delivery_method,
            province=province,
            district=district,
            subdistrict=subdistrict,
            cod_capable=cod_capable,
            planned_delivery_date=planned_delivery_date,
            estimated_delivery_time=estimated_delivery_time,
            delivery_fee=delivery_fee,
            cod_amount=cod_amount,
            status=TaskStatus.PENDING.value,
            max_retries=max_retries,
            pickup_status=PickupStatus.NOT_REQUIRED.value if self_delivery else PickupStatus.PENDING.value,
            pickup_next_attempt_at=None if self_delivery else now,
            created_at=now,
            updated_at=now,
        )
        task.raise_(
            DeliveryTaskCreated(
                task_id=str(task.id),
                order_id=str(order_id),
                address_id=str(address_id),
                delivery_method=delivery_method,
                route_code=task.route_code,
                carrier_code=task.carrier_code,
                planned_delivery_date=planned_delivery_date,
                delivery_fee=delivery_fee,
                cod_amount=cod_amount,
                status=task.status,
                created_at=now,
            )
        )
        return task

    # -------------------------------------------------------------------
    # Lifecycle queries
    # -------------------------------------------------------------------
    @property
    def is_self_delivery(self) -> bool:
        return self.delivery_method == DeliveryMethod.SELF_DELIVERY.value

    @property
    def can_retry(self) -> bool:
        return (self.retry_count or 0) < (self.max_retries or 0)

    @property
    def is_terminal(self) -> bool:
        status = TaskStatus(self.status)
        if status in (TaskStatus.DELIVERED, TaskStatus.CANCELLED):
            return True
        return status is TaskStatus.FAILED and not self.can_retry

    def pickup_request(self) -> PickupRequest:
        return PickupRequest(
            task_id=str(self.id),
            order_id=str(self.order_id),
            province=self.province or "",
            district=self.district or "",
            subdistrict=self.subdistrict or "",
            cod_amount=self.cod_amount or 0.0,
            pickup_date=self.planned_delivery_date,
        )

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target: TaskStatus) -> None:
        current = TaskStatus(self.status)
        if self.is_terminal:
            raise InvalidTransitionError(
                {"status": [f"Task is closed ({current.value}); cannot move to {target.value}"]}
            )
        if target in _VALID_TRANSITIONS.get(current, set()):
            return
        if current in _PROGRESS and target in _PROGRESS and _PROGRESS[target] < _PROGRESS[current]:
            raise InvalidTransitionError(
                {"status": [f"Stale update: task is already {current.value}, {target.value} is behind it"]}
            )
        raise InvalidTransitionError({"status": [f"Cannot transition from {current.value} to {target.value}"]})

    def _move_to(self, target: TaskStatus, now: datetime, reason: str | None = None) -> None:
        old_status = self.status
        self.status = target.value
        self.updated_at = now
        self.active_order_key = f"closed:{self.id}" if self.is_terminal else str(self.order_id)
        self.raise_(
            DeliveryTaskStatusChanged(
                task_id=str(self.id),
                order_id=str(self.order_id),
                old_status=old_status,
                new_status=target.value,
                reason=_clip(reason),
                occurred_at=now,
            )
        )

    def _append_note(self, note: str) -> None:
        self.notes = f"{self.notes}\n{note}" if self.notes else note

    # -------------------------------------------------------------------
    # Status updates (drivers, carrier webhooks, admin)
    # -------------------------------------------------------------------
    def update_status(
        self,
        target: TaskStatus,
        reason: str | None = None,
        retry_date: date | None = None,
        schedule_days: Iterable[int] | None = None,
        now: datetime | None = None,
    ) -> bool:
        """Apply a status reported from outside.

        Returns False when the task is already in ``target`` (a duplicate
        delivery of the same update); nothing changes and no event is raised.
        """
        if TaskStatus(self.status) is target:
            return False

        now = now or datetime.now(UTC)
        if target is TaskStatus.PLANNED:
            self._assert_can_transition(target)
            self._move_to(target, now, reason)
        elif target is TaskStatus.DISPATCHED:
            self.mark_dispatched(now)
        elif target is TaskStatus.IN_TRANSIT:
            self.mark_in_transit(now)
        elif target is TaskStatus.DELIVERED:
            self.mark_delivered(now)
        elif target is TaskStatus.FAILED:
            self.mark_failed(reason or "Delivery failed", now)
        elif target is TaskStatus.PENDING:
            self.retry(retry_date, schedule_days, now)
        elif target is TaskStatus.CANCELLED:
            self.cancel(reason or "Cancelled", now)
        return True

    def mark_dispatched(self, now: datetime | None = None) -> None:
        self._assert_can_transition(TaskStatus.DISPATCHED)
        now = now or datetime.now(UTC)
        self.actual_pickup_time = now
        self._move_to(TaskStatus.DISPATCHED, now)

    def mark_in_transit(self, now: datetime | None = None) -> None:
        self._assert_can_transition(TaskStatus.IN_TRANSIT)
        self._move_to(TaskStatus.IN_TRANSIT, now or datetime.now(UTC))

    def mark_delivered(self, now: datetime | None = None) -> None:
        self._assert_can_transition(TaskStatus.DELIVERED)
        now = now or datetime.now(UTC)
        self.actual_delivery_time = now
        self._move_to(TaskStatus.DELIVERED, now)
        if (self.cod_amount or 0) > 0:
            self.raise_(
                CODCollected(
                    task_id=str(self.id),
                    order_id=str(self.order_id),
                    amount=self.cod_amount,
                    delivery_method=self.delivery_method,
                    collected_at=now,
                )
            )

    def mark_failed(self, reason: str, now: datetime | None = None) -> None:
        self._assert_can_transition(TaskStatus.FAILED)
        now = now or datetime.now(UTC)
        self._append_note(f"Delivery failed: {reason}")
        self._move_to(TaskStatus.FAILED, now, reason)

    def retry(
        self,
        retry_date: date | None = None,
        schedule_days: Iterable[int] | None = None,
        now: datetime | None = None,
    ) -> None:
        """Send a failed task back to pending for another attempt.

        Self-delivery tasks move to ``retry_date`` and lose their manifest
        assignment; carrier tasks go back into the pickup queue.
        """
        current = TaskStatus(self.status)
        if current is TaskStatus.FAILED and not self.can_retry:
            raise InvalidTransitionError(
                {"status": [f"Retries exhausted ({self.retry_count} of {self.max_retries})"]}
            )
        self._assert_can_transition(TaskStatus.PENDING)
        if self.is_self_delivery:
            if retry_date is None:
                raise ValidationError({"planned_delivery_date": ["A retry needs a new delivery date"]})
            if schedule_days is not None:
                _assert_scheduled(retry_date, schedule_days)
        now = now or datetime.now(UTC)
        old_date = self.planned_delivery_date

        with atomic_change(self):
            self.retry_count = (self.retry_count or 0) + 1
            if self.is_self_delivery:
                self.planned_delivery_date = retry_date
                self.manifest_id = None
                self.vehicle_id = None
                self.driver_id = None
            else:
                self.tracking_number = None
                self.actual_pickup_time = None
                self.pickup_status = PickupStatus.PENDING.value
                self.pickup_attempts = 0
                self.pickup_next_attempt_at = now
                self.pickup_last_error = None
                self.pickup_scheduled_at = None
            self._move_to(TaskStatus.PENDING, now, f"Retry {self.retry_count} of {self.max_retries}")

        if self.is_self_delivery and old_date != self.planned_delivery_date:
            self.raise_(
                DeliveryTaskRescheduled(
                    task_id=str(self.id),
                    order_id=str(self.order_id),
                    old_date=old_date,
                    new_date=self.planned_delivery_date,
                    reason="retry",
                    rescheduled_at=now,
                )
            )

    def cancel(self, reason: str, now: datetime | None = None) -> None:
        self._assert_can_transition(TaskStatus.CANCELLED)
        now = now or datetime.now(UTC)
        with atomic_change(self):
            if self.pickup_status == PickupStatus.PENDING.value:
                self.pickup_status = PickupStatus.NOT_REQUIRED.value
                self.pickup_next_attempt_at = None
            self._append_note(f"Cancelled: {reason}")
            self._move_to(TaskStatus.CANCELLED, now, reason)

    # -------------------------------------------------------------------
    # Route planning
    # -------------------------------------------------------------------
    def assign_to_manifest(
        self,
        manifest_id: str,
        vehicle_id: str,
        driver_id: str,
        now: datetime | None = None,
    ) -> None:
        if not self.is_self_delivery:
            raise ValidationError({"delivery_method": ["Only self-delivery tasks go on route manifests"]})
        self._assert_can_transition(TaskStatus.PLANNED)
        now = now or datetime.now(UTC)
        with atomic_change(self):
            self.manifest_id = manifest_id
            self.vehicle_id = vehicle_id
            self.driver_id = driver_id
            self._move_to(TaskStatus.PLANNED, now, f"Assigned to manifest {manifest_id}")

    def reschedule(
        self,
        new_date: date,
        schedule_days: Iterable[int],
        reason: str,
        now: datetime | None = None,
    ) -> None:
        """Move a pending self-delivery task to another route day."""
        if TaskStatus(self.status) is not TaskStatus.PENDING:
            raise ValidationError({"status": ["Only pending tasks can be rescheduled"]})
        _assert_scheduled(new_date, schedule_days)
        now = now or datetime.now(UTC)
        old_date = self.planned_delivery_date
        self.planned_delivery_date = new_date
        self._append_note(f"Rescheduled {old_date} -> {new_date}: {reason}")
        self.updated_at = now
        self.raise_(
            DeliveryTaskRescheduled(
                task_id=str(self.id),
                order_id=str(self.order_id),
                old_date=old_date,
                new_date=new_date,
                reason=_clip(reason),
                rescheduled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Carrier pickup scheduling
    # -------------------------------------------------------------------
    def confirm_pickup(
        self,
        tracking_number: str,
        pickup_time: datetime | None = None,
        estimated_delivery: datetime | None = None,
        now: datetime | None = None,
    ) -> None:
        if self.pickup_status != PickupStatus.PENDING.value:
            raise ValidationError({"pickup_status": [f"No pickup is being scheduled (status {self.pickup_status})"]})
        self._assert_can_transition(TaskStatus.PLANNED)
        now = now or datetime.now(UTC)
        with atomic_change(self):
            self.tracking_number = tracking_number
            self.pickup_status = PickupStatus.SCHEDULED.value
            self.pickup_scheduled_at = now
            self.pickup_next_attempt_at = None
            self.pickup_last_error = None
            if estimated_delivery is not None:
                self.estimated_delivery_time = estimated_delivery
            self._move_to(TaskStatus.PLANNED, now, f"Pickup booked with {self.carrier_code}")
        self.raise_(
            PickupScheduled(
                task_id=str(self.id),
                order_id=str(self.order_id),
                carrier_code=self.carrier_code,
                tracking_number=tracking_number,
                pickup_time=pickup_time,
                estimated_delivery=estimated_delivery,
                scheduled_at=now,
            )
        )

    def record_pickup_failure(
        self,
        error: str,
        max_attempts: int,
        backoff: Callable[[int], int],
        now: datetime | None = None,
    ) -> bool:
        """Count a failed pickup request.

        Schedules the next attempt after ``backoff(attempt)`` seconds and
        returns True, or, once ``max_attempts`` is reached, fails the task,
        raises the exhaustion alert and returns False.
        """
        if self.pickup_status != PickupStatus.PENDING.value:
            raise ValidationError({"pickup_status": [f"No pickup is being scheduled (status {self.pickup_status})"]})
        now = now or datetime.now(UTC)
        attempt = (self.pickup_attempts or 0) + 1
        self.pickup_attempts = attempt
        self.pickup_last_error = error[:500]

        if attempt >= max_attempts:
            with atomic_change(self):
                self.pickup_status = PickupStatus.EXHAUSTED.value
                self.pickup_next_attempt_at = None
                self._append_note(f"Pickup scheduling gave up after {attempt} attempts: {error}")
                # System path: a task that never reached the carrier fails from pending
                self._move_to(TaskStatus.FAILED, now, "Pickup scheduling exhausted")
            self.raise_(
                PickupSchedulingExhausted(
                    task_id=str(self.id),
                    order_id=str(self.order_id),
                    carrier_code=self.carrier_code,
                    attempts=attempt,
                    last_error=_clip(error),
                    occurred_at=now,
                )
            )
            return False

        next_attempt_at = now + timedelta(seconds=backoff(attempt))
        self.pickup_next_attempt_at = next_attempt_at
        self.updated_at = now
        self.raise_(
            PickupAttemptFailed(
                task_id=str(self.id),
                order_id=str(self.order_id),
                carrier_code=self.carrier_code,
                attempt=attempt,
                error=_clip(error),
                next_attempt_at=next_attempt_at,
            )
        )
        return True


def _assert_scheduled(day: date, schedule_days: Iterable[int]) -> None:
    days = frozenset(schedule_days)
    if day is None or day.weekday() not in days:
        raise ValidationError({"planned_delivery_date": [f"{day} is not a delivery day on this route"]})
