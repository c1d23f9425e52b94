"""RouteManifest aggregate — one vehicle's run on one route and day.

The manifest id is derived from route, date and vehicle, so planning the same
day again finds the manifest it built before instead of building a second.
"""

import json
from datetime import UTC, date, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Date, DateTime, HasMany, Identifier, Integer, String

from shipping.domain import shipping
from shipping.errors import CapacityExceeded
from shipping.routing.events import RouteManifestExtended, RoutePlanned


def manifest_key(route_code: str, delivery_date: date, vehicle_id: str) -> str:
    return f"{route_code}:{delivery_date.isoformat()}:{vehicle_id}"


@shipping.entity(part_of="RouteManifest")
class ManifestStop:
    """A task's place in the vehicle's run."""

    task_id = Identifier(required=True)
    order_id = Identifier(required=True)
    sequence = Integer(required=True, min_value=1)
    district = String(max_length=100)
    subdistrict = String(max_length=100)


@shipping.aggregate
class RouteManifest:
    id = String(identifier=True, max_length=150)
    route_code = String(required=True, max_length=50)
    delivery_date = Date(required=True)
    vehicle_id = Identifier(required=True)
    driver_id = Identifier(required=True)
    capacity = Integer(required=True, min_value=1)
    stops = HasMany(ManifestStop)
    planned_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def stops_within_capacity(self):
        if len(self.stops) > (self.capacity or 0):
            raise ValidationError({"stops": [f"Manifest holds at most {self.capacity} stops"]})

    @classmethod
    def open(
        cls,
        route_code: str,
        delivery_date: date,
        vehicle_id: str,
        driver_id: str,
        capacity: int,
        now: datetime | None = None,
    ):
        now = now or datetime.now(UTC)
        return cls(
            id=manifest_key(route_code, delivery_date, vehicle_id),
            route_code=route_code,
            delivery_date=delivery_date,
            vehicle_id=vehicle_id,
            driver_id=driver_id,
            capacity=capacity,
            planned_at=now,
            updated_at=now,
        )

    @property
    def ordered_stops(self) -> list:
        return sorted(self.stops, key=lambda s: s.sequence)

    @property
    def task_ids(self) -> list[str]:
        return [str(s.task_id) for s in self.ordered_stops]

    @property
    def remaining_capacity(self) -> int:
        return max(self.capacity - len(self.stops), 0)

    def add_stop(self, task) -> ManifestStop:
        """Append a task as the next stop; raises CapacityExceeded when full."""
        if self.remaining_capacity == 0:
            raise CapacityExceeded(self.id, self.capacity)
        stop = ManifestStop(
            task_id=str(task.id),
            order_id=str(task.order_id),
            sequence=len(self.stops) + 1,
            district=task.district,
            subdistrict=task.subdistrict,
        )
        self.add_stops(stop)
        return stop

    def announce(self, added_task_ids: list[str], is_new: bool, now: datetime | None = None) -> None:
        """Raise the event for this run's changes to the manifest."""
        now = now or datetime.now(UTC)
        self.updated_at = now
        if is_new:
            self.raise_(
                RoutePlanned(
                    manifest_id=self.id,
                    route_code=self.route_code,
                    delivery_date=self.delivery_date,
                    vehicle_id=self.vehicle_id,
                    driver_id=self.driver_id,
                    task_ids=json.dumps(self.task_ids),
                    stop_count=len(self.stops),
                    planned_at=now,
                )
            )
        elif added_task_ids:
            self.raise_(
                RouteManifestExtended(
                    manifest_id=self.id,
                    added_task_ids=json.dumps(added_task_ids),
                    stop_count=len(self.stops),
                    extended_at=now,
                )
            )

    def to_summary(self) -> dict:
        return {
            "manifest_id": self.id,
            "vehicle_id": str(self.vehicle_id),
            "driver_id": str(self.driver_id),
            "task_ids": self.task_ids,
        }
