"""Reference data events — delivery routes and carriers."""

from protean.fields import Boolean, DateTime, Float, String, Text

from shipping.domain import shipping


@shipping.event(part_of="DeliveryRoute")
class DeliveryRouteDefined:
    """A delivery route was defined or its coverage/schedule revised."""

    __version__ = 1

    route_code = String(required=True)
    name = String(required=True)
    delivery_days = Text(required=True)  # JSON list of weekday names
    base_fee = Float(required=True)
    defined_at = DateTime(required=True)


@shipping.event(part_of="DeliveryRoute")
class DeliveryRouteDeactivated:
    """A delivery route stopped accepting new tasks."""

    __version__ = 1

    route_code = String(required=True)
    deactivated_at = DateTime(required=True)


@shipping.event(part_of="DeliveryCarrier")
class CarrierRegistered:
    """A third-party carrier was registered or its terms updated."""

    __version__ = 1

    carrier_code = String(required=True)
    display_name = String(required=True)
    carrier_type = String(required=True)
    pricing_type = String(required=True)
    cod_available = Boolean(required=True)
    registered_at = DateTime(required=True)


@shipping.event(part_of="DeliveryCarrier")
class CarrierDeactivated:
    """A carrier stopped being offered for new tasks."""

    __version__ = 1

    carrier_code = String(required=True)
    deactivated_at = DateTime(required=True)
