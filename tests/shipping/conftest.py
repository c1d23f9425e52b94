import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def shipping_bed():
    from shipping.domain import shipping

    bed = DomainFixture(shipping)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(shipping_bed):
    with shipping_bed.domain_context():
        yield


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------
@pytest.fixture()
def address_book():
    from shipping.address import get_address_book

    return get_address_book()


@pytest.fixture()
def fake_carrier():
    from shipping.carrier import get_carrier

    return get_carrier()


@pytest.fixture()
def define_route():
    """Factory: define a delivery route through its command."""
    import json

    from protean import current_domain
    from shipping.catalog.management import DefineDeliveryRoute

    def _define(code="BKK-N", name="Bangkok North", delivery_days=("tuesday", "friday"), base_fee=40.0, **areas):
        if not any(areas.get(k) for k in ("provinces", "districts", "subdistricts")):
            areas["provinces"] = ["Bangkok"]
        return current_domain.process(
            DefineDeliveryRoute(
                code=code,
                name=name,
                delivery_days=json.dumps(list(delivery_days)),
                base_fee=base_fee,
                provinces=json.dumps(areas.get("provinces") or []),
                districts=json.dumps(areas.get("districts") or []),
                subdistricts=json.dumps(areas.get("subdistricts") or []),
                cod_available=areas.get("cod_available", True),
            ),
            asynchronous=False,
        )

    return _define


@pytest.fixture()
def register_carrier():
    """Factory: register a carrier through its command."""
    import json

    from protean import current_domain
    from shipping.catalog.management import RegisterCarrier

    def _register(code="flash", pricing=None, **terms):
        return current_domain.process(
            RegisterCarrier(
                code=code,
                display_name=terms.pop("display_name", code.title()),
                pricing_rules=json.dumps(pricing or {"type": "flat", "fee": 60.0}),
                provinces=json.dumps(terms.pop("provinces", [])),
                **terms,
            ),
            asynchronous=False,
        )

    return _register


@pytest.fixture()
def register_vehicle():
    """Factory: register a crewed vehicle through its command."""
    import json

    from protean import current_domain
    from shipping.fleet.vehicle import RegisterVehicle

    def _register(license_plate, driver_id="drv-001", capacity=None, route_codes=()):
        return current_domain.process(
            RegisterVehicle(
                license_plate=license_plate,
                driver_id=driver_id,
                capacity=capacity,
                route_codes=json.dumps(list(route_codes)),
            ),
            asynchronous=False,
        )

    return _register


@pytest.fixture()
def bangkok_address(address_book):
    from shipping.address.port import Address

    return address_book.register(
        Address(address_id="addr-bkk-001", province="Bangkok", district="Chatuchak", subdistrict="Lat Yao")
    )


@pytest.fixture()
def chiang_mai_address(address_book):
    from shipping.address.port import Address

    return address_book.register(Address(address_id="addr-cnx-001", province="Chiang Mai", district="Mueang"))
