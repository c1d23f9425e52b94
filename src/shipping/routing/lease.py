"""RoutePlanningLease aggregate — at most one planning run per delivery date.

The lease is keyed by the ISO date. A scheduled run and a manual trigger both
acquire it first, each in its own transaction; the second one sees an
unexpired lease held by someone else and fails with PlanningInProgressError.
An abandoned lease expires after ``PLANNING_LEASE_SECONDS``.
"""

from datetime import UTC, date, datetime, timedelta

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Date, DateTime, String
from protean.utils.globals import current_domain

from shipping.domain import shipping
from shipping.errors import PlanningInProgressError
from shipping.settings import get_settings

logger = structlog.get_logger(__name__)


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=UTC)


@shipping.aggregate
class RoutePlanningLease:
    id = String(identifier=True, max_length=10)  # ISO date
    holder = String(max_length=100)
    acquired_at = DateTime()
    expires_at = DateTime()
    released_at = DateTime()

    def is_held(self, now: datetime) -> bool:
        return bool(self.holder) and self.released_at is None and _aware(self.expires_at) > _aware(now)

    def is_held_by(self, holder: str, now: datetime) -> bool:
        return self.is_held(now) and self.holder == holder

    def acquire(self, holder: str, now: datetime, ttl_seconds: int) -> None:
        if self.is_held(now) and self.holder != holder:
            raise PlanningInProgressError(
                {"delivery_date": [f"Routes for {self.id} are being planned by {self.holder} until {self.expires_at}"]}
            )
        self.holder = holder
        self.acquired_at = now
        self.expires_at = now + timedelta(seconds=ttl_seconds)
        self.released_at = None

    def release(self, holder: str, now: datetime) -> None:
        if self.holder == holder and self.released_at is None:
            self.released_at = now


@shipping.command(part_of="RoutePlanningLease")
class AcquirePlanningLease:
    delivery_date = Date(required=True)
    holder = String(required=True, max_length=100)
    requested_at = DateTime()


@shipping.command(part_of="RoutePlanningLease")
class ReleasePlanningLease:
    delivery_date = Date(required=True)
    holder = String(required=True, max_length=100)


@shipping.command_handler(part_of=RoutePlanningLease)
class PlanningLeaseHandler:
    @handle(AcquirePlanningLease)
    def acquire(self, command):
        repo = current_domain.repository_for(RoutePlanningLease)
        now = command.requested_at or datetime.now(UTC)
        key = lease_key(command.delivery_date)
        try:
            lease = repo.get(key)
        except ObjectNotFoundError:
            lease = RoutePlanningLease(id=key)
        lease.acquire(command.holder, now, get_settings().planning_lease_seconds)
        repo.add(lease)
        logger.info("Planning lease acquired", delivery_date=key, holder=command.holder)

    @handle(ReleasePlanningLease)
    def release(self, command):
        repo = current_domain.repository_for(RoutePlanningLease)
        try:
            lease = repo.get(lease_key(command.delivery_date))
        except ObjectNotFoundError:
            return
        lease.release(command.holder, datetime.now(UTC))
        repo.add(lease)


def lease_key(delivery_date: date) -> str:
    return delivery_date.isoformat()
