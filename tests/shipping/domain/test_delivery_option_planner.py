"""Tests for DeliveryOptionPlanner ranking, dates and fees."""

from datetime import UTC, date, datetime, time

import pytest
from shipping.address.port import Address
from shipping.catalog.pricing import CodPercentagePricing, FlatRatePricing, ZonedPricing
from shipping.catalog.snapshot import CarrierEntry, CarrierRegistry, RouteCatalog, RouteEntry
from shipping.errors import NoCoverageError
from shipping.planning.options import DeliveryOptionPlanner
from shipping.settings import DispatchSettings

# Wednesday 2026-10-21, 10:00 in Bangkok
WED_MORNING = datetime(2026, 10, 21, 3, 0, tzinfo=UTC)
# Same day, 16:00 in Bangkok (after a 15:00 cutoff)
WED_AFTERNOON = datetime(2026, 10, 21, 9, 0, tzinfo=UTC)

BANGKOK = Address(address_id="a1", province="Bangkok", district="Chatuchak", subdistrict="Lat Yao")


def _route(code="BKK-N", days=(1, 4), base_fee=40.0, cod_available=True):
    return RouteEntry(
        code=code,
        name=code,
        provinces=frozenset({"bangkok"}),
        districts=frozenset(),
        subdistricts=frozenset(),
        delivery_days=frozenset(days),
        base_fee=base_fee,
        cod_available=cod_available,
    )


def _carrier(code="flash", pricing=None, transit_days=1, cod_available=True, priority=100, provinces=()):
    return CarrierEntry(
        code=code,
        display_name=code.title(),
        carrier_type="scheduled",
        provinces=frozenset(p.casefold() for p in provinces),
        pricing=pricing or FlatRatePricing(fee=60.0),
        cutoff=time(15, 0),
        transit_days=transit_days,
        cod_available=cod_available,
        priority=priority,
        tracking_url_template=None,
    )


def _planner(routes=(), carriers=()):
    return DeliveryOptionPlanner(
        RouteCatalog(routes=tuple(routes)),
        CarrierRegistry(carriers=tuple(carriers)),
        DispatchSettings(),
    )


class TestRouteOption:
    def test_wednesday_order_on_tuesday_friday_route_plans_friday(self):
        options = _planner(routes=[_route()]).options_for(BANGKOK, 0.0, WED_MORNING)
        assert len(options) == 1
        option = options[0]
        assert option.method == "self_delivery"
        assert option.route_code == "BKK-N"
        assert option.planned_date == date(2026, 10, 23)
        assert option.estimated_delivery == datetime(2026, 10, 23, 11, 0, tzinfo=UTC)
        assert option.estimated_hours == 56
        assert option.fee == 40.0

    def test_delivery_day_itself_is_offered(self):
        tuesday = datetime(2026, 10, 20, 3, 0, tzinfo=UTC)
        option = _planner(routes=[_route()]).options_for(BANGKOK, 0.0, tuesday)[0]
        assert option.planned_date == date(2026, 10, 20)

    def test_cod_surcharge_in_fee(self):
        option = _planner(routes=[_route()]).options_for(BANGKOK, 500.0, WED_MORNING)[0]
        assert option.fee == 60.0


class TestCarrierOption:
    def test_before_cutoff(self):
        option = _planner(carriers=[_carrier()]).options_for(BANGKOK, 0.0, WED_MORNING)[0]
        assert option.method == "flash"
        assert option.carrier_code == "flash"
        assert option.planned_date == date(2026, 10, 22)
        assert option.estimated_hours == 32

    def test_after_cutoff_adds_a_day(self):
        option = _planner(carriers=[_carrier()]).options_for(BANGKOK, 0.0, WED_AFTERNOON)[0]
        assert option.planned_date == date(2026, 10, 23)

    def test_zoned_pricing_quotes_by_province(self):
        pricing = ZonedPricing(zones=(("Bangkok", 35.0),), default_fee=90.0)
        option = _planner(carriers=[_carrier(pricing=pricing)]).options_for(BANGKOK, 0.0, WED_MORNING)[0]
        assert option.fee == 35.0

    def test_cod_percentage_carrier_charges_cod_once(self):
        pricing = CodPercentagePricing(base_fee=50.0, cod_rate_percent=2.0)
        option = _planner(carriers=[_carrier(pricing=pricing)]).options_for(BANGKOK, 500.0, WED_MORNING)[0]
        # 50 base + 10 carrier handling, no table surcharge on top
        assert option.fee == 60.0

    def test_cod_percentage_minimum_handling(self):
        pricing = CodPercentagePricing(base_fee=50.0, cod_rate_percent=2.0, min_cod_fee=15.0)
        option = _planner(carriers=[_carrier(pricing=pricing)]).options_for(BANGKOK, 500.0, WED_MORNING)[0]
        assert option.fee == 65.0

    def test_flat_carrier_takes_table_surcharge(self):
        option = _planner(carriers=[_carrier()]).options_for(BANGKOK, 500.0, WED_MORNING)[0]
        assert option.fee == 80.0

    def test_carrier_outside_its_provinces_not_offered(self):
        planner = _planner(routes=[_route()], carriers=[_carrier(provinces=["Chiang Mai"])])
        assert [o.method for o in planner.options_for(BANGKOK, 0.0, WED_MORNING)] == ["self_delivery"]


class TestRanking:
    def test_cheapest_first_and_recommended(self):
        planner = _planner(routes=[_route()], carriers=[_carrier()])
        options = planner.options_for(BANGKOK, 500.0, WED_MORNING)
        assert [o.method for o in options] == ["self_delivery", "flash"]
        assert options[0].is_recommended
        assert options[0].reason
        assert not options[1].is_recommended
        # 60 fee + 20 COD surcharge + 1% COD risk
        assert options[1].fee == 80.0
        assert options[1].ranking_cost == 85.0

    def test_cheaper_carrier_ranks_first(self):
        planner = _planner(routes=[_route()], carriers=[_carrier(pricing=FlatRatePricing(fee=20.0))])
        assert planner.options_for(BANGKOK, 0.0, WED_MORNING)[0].method == "flash"

    def test_cod_risk_can_tie_and_own_fleet_wins_tie(self):
        # Route 40 + 35 = 75; carrier 20 + 35 + 20 risk = 75
        planner = _planner(routes=[_route()], carriers=[_carrier(pricing=FlatRatePricing(fee=20.0))])
        options = planner.options_for(BANGKOK, 2000.0, WED_MORNING)
        assert options[0].ranking_cost == options[1].ranking_cost == 75.0
        assert options[0].method == "self_delivery"

    def test_methods_unable_to_collect_cod_go_last(self):
        planner = _planner(
            routes=[_route(cod_available=False)],
            carriers=[_carrier(pricing=FlatRatePricing(fee=200.0))],
        )
        options = planner.options_for(BANGKOK, 500.0, WED_MORNING)
        assert [o.method for o in options] == ["flash", "self_delivery"]

    def test_carrier_priority_breaks_ties(self):
        planner = _planner(carriers=[_carrier("flash", priority=20), _carrier("lalamove", priority=10)])
        assert [o.method for o in planner.options_for(BANGKOK, 0.0, WED_MORNING)] == ["lalamove", "flash"]


class TestNoCoverage:
    def test_nothing_covers_address(self):
        planner = _planner(routes=[_route()], carriers=[_carrier(provinces=["Bangkok"])])
        phuket = Address(address_id="a9", province="Phuket")
        with pytest.raises(NoCoverageError) as exc:
            planner.options_for(phuket, 0.0, WED_MORNING)
        assert "address" in exc.value.messages

    def test_empty_reference_data(self):
        with pytest.raises(NoCoverageError):
            _planner().options_for(BANGKOK, 0.0, WED_MORNING)
