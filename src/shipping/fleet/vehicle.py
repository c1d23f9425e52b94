"""Vehicle aggregate — the own delivery fleet.

Each vehicle has a regular driver, a stop capacity and, optionally, the
routes it may run. Route planning reads the fleet through ``VehiclePool``, a
frozen snapshot loaded once per run.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from shipping.catalog.route import dump_names, load_names
from shipping.domain import shipping

_SCAN_LIMIT = 1000


@shipping.event(part_of="Vehicle")
class VehicleRegistered:
    __version__ = 1

    vehicle_id = Identifier(required=True)
    license_plate = String(required=True)
    driver_id = Identifier()
    capacity = Integer()
    registered_at = DateTime(required=True)


@shipping.event(part_of="Vehicle")
class VehicleDeactivated:
    __version__ = 1

    vehicle_id = Identifier(required=True)
    license_plate = String(required=True)
    deactivated_at = DateTime(required=True)


@shipping.aggregate
class Vehicle:
    license_plate = String(required=True, max_length=20, unique=True)
    driver_id = Identifier()
    capacity = Integer(min_value=1)  # Stops per run; falls back to DEFAULT_VEHICLE_CAPACITY
    route_codes = Text()  # JSON list, empty means any route
    is_active = Boolean(default=True)
    registered_at = DateTime()

    @classmethod
    def register(
        cls,
        license_plate: str,
        driver_id: str | None = None,
        capacity: int | None = None,
        route_codes: list[str] | None = None,
    ):
        now = datetime.now(UTC)
        vehicle = cls(
            license_plate=license_plate.strip().upper(),
            driver_id=driver_id,
            capacity=capacity,
            route_codes=dump_names(route_codes),
            is_active=True,
            registered_at=now,
        )
        vehicle.raise_(
            VehicleRegistered(
                vehicle_id=str(vehicle.id),
                license_plate=vehicle.license_plate,
                driver_id=driver_id,
                capacity=capacity,
                registered_at=now,
            )
        )
        return vehicle

    def assign_driver(self, driver_id: str) -> None:
        self.driver_id = driver_id

    def deactivate(self) -> None:
        if not self.is_active:
            raise ValidationError({"is_active": ["Vehicle is already inactive"]})
        self.is_active = False
        self.raise_(
            VehicleDeactivated(
                vehicle_id=str(self.id),
                license_plate=self.license_plate,
                deactivated_at=datetime.now(UTC),
            )
        )


@dataclass(frozen=True)
class VehicleEntry:
    vehicle_id: str
    license_plate: str
    driver_id: str
    capacity: int
    route_codes: frozenset[str]

    def serves(self, route_code: str) -> bool:
        return not self.route_codes or route_code in self.route_codes


@dataclass(frozen=True)
class VehiclePool:
    """Active, crewed vehicles in license-plate order."""

    vehicles: tuple[VehicleEntry, ...] = ()

    @classmethod
    def load(cls, default_capacity: int) -> "VehiclePool":
        repo = current_domain.repository_for(Vehicle)
        active = repo._dao.query.filter(is_active=True).limit(_SCAN_LIMIT).all().items
        entries = [
            VehicleEntry(
                vehicle_id=str(v.id),
                license_plate=v.license_plate,
                driver_id=str(v.driver_id),
                capacity=v.capacity or default_capacity,
                route_codes=frozenset(load_names(v.route_codes)),
            )
            for v in active
            if v.driver_id
        ]
        return cls(vehicles=tuple(sorted(entries, key=lambda e: e.license_plate)))

    def get(self, vehicle_id: str) -> VehicleEntry | None:
        for entry in self.vehicles:
            if entry.vehicle_id == vehicle_id:
                return entry
        return None

    def free_for(self, route_code: str, taken: set[str]) -> list[VehicleEntry]:
        return [v for v in self.vehicles if v.vehicle_id not in taken and v.serves(route_code)]


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@shipping.command(part_of="Vehicle")
class RegisterVehicle:
    license_plate = String(required=True, max_length=20)
    driver_id = Identifier()
    capacity = Integer(min_value=1)
    route_codes = Text()  # JSON list


@shipping.command(part_of="Vehicle")
class AssignDriver:
    vehicle_id = Identifier(required=True)
    driver_id = Identifier(required=True)


@shipping.command(part_of="Vehicle")
class DeactivateVehicle:
    vehicle_id = Identifier(required=True)


@shipping.command_handler(part_of=Vehicle)
class VehicleHandler:
    @handle(RegisterVehicle)
    def register_vehicle(self, command):
        repo = current_domain.repository_for(Vehicle)
        plate = command.license_plate.strip().upper()
        existing = repo._dao.query.filter(license_plate=plate).all()
        if existing.items:
            raise ValidationError({"license_plate": [f"Vehicle {plate} is already registered"]})
        vehicle = Vehicle.register(
            license_plate=plate,
            driver_id=command.driver_id,
            capacity=command.capacity,
            route_codes=load_names(command.route_codes),
        )
        repo.add(vehicle)
        return str(vehicle.id)

    @handle(AssignDriver)
    def assign_driver(self, command):
        repo = current_domain.repository_for(Vehicle)
        vehicle = repo.get(command.vehicle_id)
        vehicle.assign_driver(command.driver_id)
        repo.add(vehicle)

    @handle(DeactivateVehicle)
    def deactivate_vehicle(self, command):
        repo = current_domain.repository_for(Vehicle)
        try:
            vehicle = repo.get(command.vehicle_id)
        except ObjectNotFoundError:
            raise ObjectNotFoundError({"vehicle_id": [f"Vehicle {command.vehicle_id} does not exist"]}) from None
        vehicle.deactivate()
        repo.add(vehicle)
