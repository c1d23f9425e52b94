"""DeliveryOptionPlanner — ranked delivery options for an address.

For one address the planner offers:

* the own fleet, when a delivery route covers the address, on the route's
  next scheduled day (today included);
* every active carrier covering the province, delivering after the carrier's
  transit days, one day later when the order misses the carrier's cutoff.

Options are ranked by what the delivery costs the customer plus a weighting
for the risk of handing cash to a third party. Methods that cannot collect
COD go last when cash is due. Ties favour the own fleet, then carrier
priority. An address nobody serves raises ``NoCoverageError``.
"""

import math
from dataclasses import dataclass, replace
from datetime import UTC, date, datetime, time, timedelta

from shipping.address import get_address_book
from shipping.address.port import Address
from shipping.catalog.methods import DeliveryMethod
from shipping.catalog.snapshot import CarrierEntry, CarrierRegistry, RouteCatalog, RouteEntry
from shipping.errors import NoCoverageError
from shipping.planning.fees import CarrierQuote, calculate_delivery_fee
from shipping.planning.schedule import next_delivery_date
from shipping.settings import DispatchSettings, get_settings

# Deliveries are promised by end of the working day, local time
DELIVERY_WINDOW_END = time(18, 0)


@dataclass(frozen=True)
class DeliveryOption:
    method: str
    fee: float
    ranking_cost: float
    planned_date: date
    estimated_delivery: datetime
    estimated_hours: int
    cod_capable: bool
    route_code: str | None = None
    carrier_code: str | None = None
    priority: int = 0
    is_recommended: bool = False
    reason: str = ""

    @property
    def is_self_delivery(self) -> bool:
        return self.method == DeliveryMethod.SELF_DELIVERY.value


class DeliveryOptionPlanner:
    def __init__(
        self,
        routes: RouteCatalog,
        carriers: CarrierRegistry,
        settings: DispatchSettings | None = None,
    ):
        self.routes = routes
        self.carriers = carriers
        self.settings = settings or get_settings()

    @classmethod
    def from_snapshots(cls, settings: DispatchSettings | None = None) -> "DeliveryOptionPlanner":
        """Planner over freshly loaded reference data."""
        return cls(RouteCatalog.load(), CarrierRegistry.load(), settings)

    def options_for(self, address: Address, cod_amount: float = 0.0, now: datetime | None = None) -> list[DeliveryOption]:
        now = now or datetime.now(UTC)
        local_now = now.astimezone(self.settings.tz)

        options = []
        route = self.routes.match(address)
        if route is not None:
            options.append(self._route_option(route, cod_amount, now, local_now))
        for carrier in self.carriers.covering(address):
            options.append(self._carrier_option(carrier, address, cod_amount, now, local_now))

        if not options:
            raise NoCoverageError(
                {
                    "address": [
                        f"No delivery route or carrier covers {address.subdistrict or '-'}, "
                        f"{address.district or '-'}, {address.province}"
                    ]
                }
            )

        options.sort(key=lambda o: self._rank_key(o, cod_amount))
        best = options[0]
        options[0] = replace(best, is_recommended=True, reason=_recommendation_reason(best))
        return options

    def _route_option(self, route: RouteEntry, cod_amount: float, now: datetime, local_now: datetime) -> DeliveryOption:
        planned = next_delivery_date(route.delivery_days, local_now.date())
        eta = self._end_of_day(planned)
        fee = calculate_delivery_fee(route, cod_amount)
        return DeliveryOption(
            method=DeliveryMethod.SELF_DELIVERY.value,
            fee=fee,
            ranking_cost=fee,
            planned_date=planned,
            estimated_delivery=eta,
            estimated_hours=_hours_until(now, eta),
            cod_capable=route.cod_available,
            route_code=route.code,
        )

    def _carrier_option(
        self,
        carrier: CarrierEntry,
        address: Address,
        cod_amount: float,
        now: datetime,
        local_now: datetime,
    ) -> DeliveryOption:
        days = carrier.transit_days
        if local_now.time() > carrier.cutoff:
            days += 1
        planned = local_now.date() + timedelta(days=days)
        eta = self._end_of_day(planned)

        quote = CarrierQuote(
            carrier_code=carrier.code,
            province=address.province,
            base_fee=carrier.pricing.fee_for(address.province),
            cod_handling=carrier.pricing.cod_handling(cod_amount),
        )
        fee = calculate_delivery_fee(quote, cod_amount)
        risk = round(cod_amount * self.settings.carrier_cod_risk_percent / 100, 2) if cod_amount > 0 else 0.0
        return DeliveryOption(
            method=carrier.code,
            fee=fee,
            ranking_cost=round(fee + risk, 2),
            planned_date=planned,
            estimated_delivery=eta,
            estimated_hours=_hours_until(now, eta),
            cod_capable=carrier.cod_available,
            carrier_code=carrier.code,
            priority=carrier.priority,
        )

    def _end_of_day(self, day: date) -> datetime:
        return datetime.combine(day, DELIVERY_WINDOW_END, tzinfo=self.settings.tz).astimezone(UTC)

    @staticmethod
    def _rank_key(option: DeliveryOption, cod_amount: float):
        cannot_collect = cod_amount > 0 and not option.cod_capable
        return (
            cannot_collect,
            option.ranking_cost,
            not option.is_self_delivery,
            option.priority,
            option.method,
        )


def _hours_until(now: datetime, eta: datetime) -> int:
    return max(0, math.ceil((eta - now).total_seconds() / 3600))


def _recommendation_reason(option: DeliveryOption) -> str:
    if option.is_self_delivery:
        return f"Lowest total cost: own fleet on route {option.route_code}"
    return f"Lowest total cost: {option.carrier_code}"


def get_delivery_options(
    address_id: str,
    cod_amount: float = 0.0,
    now: datetime | None = None,
) -> list[DeliveryOption]:
    """Ranked delivery options for a stored customer address."""
    address = get_address_book().get_by_id(address_id)
    return DeliveryOptionPlanner.from_snapshots().options_for(address, cod_amount, now)
