"""Immutable snapshots of the reference data used by one planning operation.

Each operation loads its own ``RouteCatalog`` and ``CarrierRegistry``. The
snapshots are frozen, so two concurrent planning runs never share mutable
state and a route edited mid-run does not change the answer half-way.
"""

from dataclasses import dataclass
from datetime import time

from protean.utils.globals import current_domain

from shipping.address.port import Address
from shipping.catalog.carrier import CarrierType, DeliveryCarrier, parse_cutoff
from shipping.catalog.pricing import PricingRule, parse_pricing_rule
from shipping.catalog.route import DeliveryRoute, load_names
from shipping.planning.schedule import parse_weekdays

# Reference tables are small; a single page covers them
_SCAN_LIMIT = 1000


def _keys(names: list[str]) -> frozenset[str]:
    return frozenset(n.casefold() for n in names)


def _key(name: str | None) -> str:
    return (name or "").strip().casefold()


@dataclass(frozen=True)
class RouteEntry:
    code: str
    name: str
    provinces: frozenset[str]
    districts: frozenset[str]
    subdistricts: frozenset[str]
    delivery_days: frozenset[int]
    base_fee: float
    cod_available: bool

    @classmethod
    def from_route(cls, route: DeliveryRoute) -> "RouteEntry":
        return cls(
            code=route.code,
            name=route.name,
            provinces=_keys(load_names(route.provinces)),
            districts=_keys(load_names(route.districts)),
            subdistricts=_keys(load_names(route.subdistricts)),
            delivery_days=parse_weekdays(load_names(route.delivery_days)),
            base_fee=route.base_fee,
            cod_available=bool(route.cod_available),
        )

    def specificity(self, address: Address) -> int:
        """3 for a subdistrict match, 2 for district, 1 for province, 0 otherwise."""
        if address.subdistrict and _key(address.subdistrict) in self.subdistricts:
            return 3
        if address.district and _key(address.district) in self.districts:
            return 2
        if _key(address.province) in self.provinces:
            return 1
        return 0


@dataclass(frozen=True)
class RouteCatalog:
    routes: tuple[RouteEntry, ...] = ()

    @classmethod
    def load(cls) -> "RouteCatalog":
        repo = current_domain.repository_for(DeliveryRoute)
        active = repo._dao.query.filter(is_active=True).limit(_SCAN_LIMIT).all().items
        entries = sorted((RouteEntry.from_route(r) for r in active), key=lambda e: e.code)
        return cls(routes=tuple(entries))

    def get(self, code: str | None) -> RouteEntry | None:
        for entry in self.routes:
            if entry.code == code:
                return entry
        return None

    def match(self, address: Address) -> RouteEntry | None:
        """Best covering route for the address.

        A covering route named by the address's route hint wins; otherwise
        the most specific match wins, ties resolved by route code.
        """
        scored = [(entry.specificity(address), entry) for entry in self.routes]
        covering = [(score, entry) for score, entry in scored if score > 0]
        if not covering:
            return None
        for _, entry in covering:
            if address.route_hint and entry.code == address.route_hint:
                return entry
        covering.sort(key=lambda pair: (-pair[0], pair[1].code))
        return covering[0][1]


@dataclass(frozen=True)
class CarrierEntry:
    code: str
    display_name: str
    carrier_type: str
    provinces: frozenset[str]
    pricing: PricingRule
    cutoff: time
    transit_days: int
    cod_available: bool
    priority: int
    tracking_url_template: str | None

    @classmethod
    def from_carrier(cls, carrier: DeliveryCarrier) -> "CarrierEntry":
        return cls(
            code=carrier.code,
            display_name=carrier.display_name,
            carrier_type=carrier.carrier_type or CarrierType.SCHEDULED.value,
            provinces=_keys(load_names(carrier.provinces)),
            pricing=parse_pricing_rule(carrier.pricing_rules),
            cutoff=parse_cutoff(carrier.cutoff_time),
            transit_days=carrier.transit_days or 0,
            cod_available=bool(carrier.cod_available),
            priority=carrier.priority if carrier.priority is not None else 100,
            tracking_url_template=carrier.tracking_url_template,
        )

    def covers(self, address: Address) -> bool:
        return not self.provinces or _key(address.province) in self.provinces


@dataclass(frozen=True)
class CarrierRegistry:
    carriers: tuple[CarrierEntry, ...] = ()

    @classmethod
    def load(cls) -> "CarrierRegistry":
        repo = current_domain.repository_for(DeliveryCarrier)
        active = repo._dao.query.filter(is_active=True).limit(_SCAN_LIMIT).all().items
        entries = sorted((CarrierEntry.from_carrier(c) for c in active), key=lambda e: (e.priority, e.code))
        return cls(carriers=tuple(entries))

    def get(self, code: str | None) -> CarrierEntry | None:
        for entry in self.carriers:
            if entry.code == code:
                return entry
        return None

    def covering(self, address: Address) -> list[CarrierEntry]:
        return [entry for entry in self.carriers if entry.covers(address)]
