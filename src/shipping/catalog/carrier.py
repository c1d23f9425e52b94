"""DeliveryCarrier aggregate — a third-party carrier and its commercial terms."""

import json
from datetime import UTC, datetime, time
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Integer, String, Text

from shipping.catalog.events import CarrierDeactivated, CarrierRegistered
from shipping.catalog.methods import DeliveryMethod
from shipping.catalog.pricing import parse_pricing_rule
from shipping.catalog.route import dump_names, load_names
from shipping.domain import shipping


class CarrierType(Enum):
    SCHEDULED = "scheduled"
    ON_DEMAND = "on_demand"


def parse_cutoff(value: str) -> time:
    """Parse a local ``HH:MM`` cutoff."""
    try:
        hours, minutes = str(value).split(":")
        return time(int(hours), int(minutes))
    except ValueError as exc:
        raise ValidationError({"cutoff_time": [f"Cutoff must be HH:MM, got {value!r}"]}) from exc


@shipping.aggregate
class DeliveryCarrier:
    code = String(identifier=True, max_length=50, choices=DeliveryMethod)
    display_name = String(required=True, max_length=100)
    carrier_type = String(choices=CarrierType, default=CarrierType.SCHEDULED.value)
    provinces = Text()  # JSON list, empty means nationwide
    pricing_rules = Text(required=True)  # JSON, see pricing.py
    cutoff_time = String(max_length=5, default="15:00")
    transit_days = Integer(default=1, min_value=0)
    cod_available = Boolean(default=False)
    priority = Integer(default=100)
    tracking_url_template = String(max_length=500)
    is_active = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def own_fleet_is_not_a_carrier(self):
        if self.code == DeliveryMethod.SELF_DELIVERY.value:
            raise ValidationError({"code": ["self_delivery is the own fleet, not a carrier"]})

    @invariant.post
    def pricing_rules_must_parse(self):
        parse_pricing_rule(self.pricing_rules)

    @invariant.post
    def cutoff_must_be_a_time_of_day(self):
        parse_cutoff(self.cutoff_time)

    @classmethod
    def register(
        cls,
        code: str,
        display_name: str,
        pricing_rules: dict | str,
        carrier_type: str = CarrierType.SCHEDULED.value,
        provinces: list[str] | None = None,
        cutoff_time: str = "15:00",
        transit_days: int = 1,
        cod_available: bool = False,
        priority: int = 100,
        tracking_url_template: str | None = None,
    ):
        now = datetime.now(UTC)
        carrier = cls(
            code=code,
            display_name=display_name,
            carrier_type=carrier_type,
            provinces=dump_names(provinces),
            pricing_rules=_normalize_rules(pricing_rules),
            cutoff_time=cutoff_time,
            transit_days=transit_days,
            cod_available=cod_available,
            priority=priority,
            tracking_url_template=tracking_url_template,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        carrier._raise_registered(now)
        return carrier

    def update_terms(
        self,
        display_name: str,
        pricing_rules: dict | str,
        carrier_type: str,
        provinces: list[str] | None,
        cutoff_time: str,
        transit_days: int,
        cod_available: bool,
        priority: int,
        tracking_url_template: str | None,
    ) -> None:
        now = datetime.now(UTC)
        with atomic_change(self):
            self.display_name = display_name
            self.pricing_rules = _normalize_rules(pricing_rules)
            self.carrier_type = carrier_type
            self.provinces = dump_names(provinces)
            self.cutoff_time = cutoff_time
            self.transit_days = transit_days
            self.cod_available = cod_available
            self.priority = priority
            self.tracking_url_template = tracking_url_template
            self.is_active = True
            self.updated_at = now
        self._raise_registered(now)

    def deactivate(self) -> None:
        if not self.is_active:
            return
        now = datetime.now(UTC)
        self.is_active = False
        self.updated_at = now
        self.raise_(CarrierDeactivated(carrier_code=self.code, deactivated_at=now))

    def covered_provinces(self) -> list[str]:
        return load_names(self.provinces)

    def tracking_url(self, tracking_number: str) -> str | None:
        if not self.tracking_url_template or not tracking_number:
            return None
        return self.tracking_url_template.replace("{tracking_number}", tracking_number)

    def _raise_registered(self, now: datetime) -> None:
        self.raise_(
            CarrierRegistered(
                carrier_code=self.code,
                display_name=self.display_name,
                carrier_type=self.carrier_type,
                pricing_type=parse_pricing_rule(self.pricing_rules).kind,
                cod_available=bool(self.cod_available),
                registered_at=now,
            )
        )


def _normalize_rules(pricing_rules: dict | str) -> str:
    """Store the rule in its canonical JSON form."""
    return json.dumps(parse_pricing_rule(pricing_rules).to_dict(), sort_keys=True)
