"""Tests for route coverage matching on catalog snapshots."""

from shipping.address.port import Address
from shipping.catalog.snapshot import RouteCatalog, RouteEntry


def _entry(code, provinces=(), districts=(), subdistricts=()):
    return RouteEntry(
        code=code,
        name=code,
        provinces=frozenset(p.casefold() for p in provinces),
        districts=frozenset(d.casefold() for d in districts),
        subdistricts=frozenset(s.casefold() for s in subdistricts),
        delivery_days=frozenset({1, 4}),
        base_fee=40.0,
        cod_available=True,
    )


ADDRESS = Address(address_id="a1", province="Bangkok", district="Chatuchak", subdistrict="Lat Yao")


class TestSpecificity:
    def test_levels(self):
        assert _entry("S", subdistricts=["Lat Yao"]).specificity(ADDRESS) == 3
        assert _entry("D", districts=["chatuchak"]).specificity(ADDRESS) == 2
        assert _entry("P", provinces=["BANGKOK"]).specificity(ADDRESS) == 1
        assert _entry("X", provinces=["Phuket"]).specificity(ADDRESS) == 0


class TestMatch:
    def test_most_specific_route_wins(self):
        catalog = RouteCatalog(
            routes=(
                _entry("A-PROV", provinces=["Bangkok"]),
                _entry("B-DIST", districts=["Chatuchak"]),
            )
        )
        assert catalog.match(ADDRESS).code == "B-DIST"

    def test_tie_broken_by_code(self):
        catalog = RouteCatalog(routes=(_entry("Z-1", provinces=["Bangkok"]), _entry("A-1", provinces=["Bangkok"])))
        assert catalog.match(ADDRESS).code == "A-1"

    def test_route_hint_wins_when_it_covers(self):
        catalog = RouteCatalog(
            routes=(
                _entry("BKK-N", provinces=["Bangkok"]),
                _entry("BKK-CTK", districts=["Chatuchak"]),
            )
        )
        hinted = Address(address_id="a2", province="Bangkok", district="Chatuchak", route_hint="BKK-N")
        assert catalog.match(hinted).code == "BKK-N"

    def test_route_hint_ignored_when_it_does_not_cover(self):
        catalog = RouteCatalog(routes=(_entry("BKK-N", provinces=["Bangkok"]), _entry("CNX", provinces=["Chiang Mai"])))
        hinted = Address(address_id="a3", province="Bangkok", route_hint="CNX")
        assert catalog.match(hinted).code == "BKK-N"

    def test_no_match(self):
        catalog = RouteCatalog(routes=(_entry("CNX", provinces=["Chiang Mai"]),))
        assert catalog.match(ADDRESS) is None

    def test_get(self):
        catalog = RouteCatalog(routes=(_entry("CNX", provinces=["Chiang Mai"]),))
        assert catalog.get("CNX").code == "CNX"
        assert catalog.get("NOPE") is None
