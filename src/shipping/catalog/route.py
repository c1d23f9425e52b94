"""DeliveryRoute aggregate — coverage area and weekly schedule of the own fleet.

A route covers provinces, districts and/or subdistricts, runs on fixed
weekdays and charges a base fee. Planning never reads these aggregates
directly; it works on a ``RouteCatalog`` snapshot (see ``snapshot.py``).
"""

import json
from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, String, Text

from shipping.catalog.events import DeliveryRouteDeactivated, DeliveryRouteDefined
from shipping.domain import shipping
from shipping.planning.schedule import parse_weekdays


def load_names(raw: str | None) -> list[str]:
    """Decode a JSON list of names stored in a Text field."""
    if not raw:
        return []
    values = json.loads(raw)
    if not isinstance(values, list):
        raise ValueError("expected a JSON list")
    return [str(v).strip() for v in values if str(v).strip()]


def dump_names(values) -> str:
    return json.dumps([str(v).strip() for v in (values or []) if str(v).strip()])


@shipping.aggregate
class DeliveryRoute:
    code = String(identifier=True, max_length=50)
    name = String(required=True, max_length=200)
    provinces = Text()  # JSON list
    districts = Text()  # JSON list
    subdistricts = Text()  # JSON list
    delivery_days = Text(required=True)  # JSON list of weekday names
    base_fee = Float(required=True, min_value=0.0)
    cod_available = Boolean(default=True)
    is_active = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def delivery_days_must_be_weekdays(self):
        try:
            parse_weekdays(load_names(self.delivery_days))
        except ValueError as exc:
            raise ValidationError({"delivery_days": [str(exc)]}) from exc

    @invariant.post
    def must_cover_an_area(self):
        try:
            areas = load_names(self.provinces) + load_names(self.districts) + load_names(self.subdistricts)
        except ValueError as exc:
            raise ValidationError({"coverage": [f"Coverage must be JSON lists: {exc}"]}) from exc
        if not areas:
            raise ValidationError({"coverage": ["A route must cover at least one province, district or subdistrict"]})

    @classmethod
    def define(
        cls,
        code: str,
        name: str,
        delivery_days: list[str],
        base_fee: float,
        provinces: list[str] | None = None,
        districts: list[str] | None = None,
        subdistricts: list[str] | None = None,
        cod_available: bool = True,
    ):
        now = datetime.now(UTC)
        route = cls(
            code=code,
            name=name,
            provinces=dump_names(provinces),
            districts=dump_names(districts),
            subdistricts=dump_names(subdistricts),
            delivery_days=dump_names(delivery_days),
            base_fee=base_fee,
            cod_available=cod_available,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        route._raise_defined(now)
        return route

    def revise(
        self,
        name: str,
        delivery_days: list[str],
        base_fee: float,
        provinces: list[str] | None = None,
        districts: list[str] | None = None,
        subdistricts: list[str] | None = None,
        cod_available: bool = True,
    ) -> None:
        """Replace coverage, schedule and pricing; reactivates the route."""
        now = datetime.now(UTC)
        with atomic_change(self):
            self.name = name
            self.provinces = dump_names(provinces)
            self.districts = dump_names(districts)
            self.subdistricts = dump_names(subdistricts)
            self.delivery_days = dump_names(delivery_days)
            self.base_fee = base_fee
            self.cod_available = cod_available
            self.is_active = True
            self.updated_at = now
        self._raise_defined(now)

    def deactivate(self) -> None:
        if not self.is_active:
            return
        now = datetime.now(UTC)
        self.is_active = False
        self.updated_at = now
        self.raise_(DeliveryRouteDeactivated(route_code=self.code, deactivated_at=now))

    def _raise_defined(self, now: datetime) -> None:
        self.raise_(
            DeliveryRouteDefined(
                route_code=self.code,
                name=self.name,
                delivery_days=self.delivery_days,
                base_fee=self.base_fee,
                defined_at=now,
            )
        )
