"""Reference data administration — commands and handlers for routes and carriers.

Defining a route (or registering a carrier) under an existing code revises it
in place, so admin tooling can replay its configuration idempotently.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, Float, Integer, String, Text
from protean.utils.globals import current_domain

from shipping.catalog.carrier import CarrierType, DeliveryCarrier
from shipping.catalog.methods import DeliveryMethod
from shipping.catalog.route import DeliveryRoute
from shipping.domain import shipping

logger = structlog.get_logger(__name__)


def _names(raw):
    if raw is None:
        return []
    return json.loads(raw) if isinstance(raw, str) else list(raw)


@shipping.command(part_of="DeliveryRoute")
class DefineDeliveryRoute:
    code = String(required=True, max_length=50)
    name = String(required=True, max_length=200)
    delivery_days = Text(required=True)  # JSON list of weekday names
    base_fee = Float(required=True, min_value=0.0)
    provinces = Text()  # JSON list
    districts = Text()  # JSON list
    subdistricts = Text()  # JSON list
    cod_available = Boolean(default=True)


@shipping.command(part_of="DeliveryRoute")
class DeactivateDeliveryRoute:
    code = String(required=True, max_length=50)


@shipping.command_handler(part_of=DeliveryRoute)
class DeliveryRouteHandler:
    @handle(DefineDeliveryRoute)
    def define_route(self, command):
        repo = current_domain.repository_for(DeliveryRoute)
        fields = dict(
            name=command.name,
            delivery_days=_names(command.delivery_days),
            base_fee=command.base_fee,
            provinces=_names(command.provinces),
            districts=_names(command.districts),
            subdistricts=_names(command.subdistricts),
            cod_available=command.cod_available,
        )
        try:
            route = repo.get(command.code)
        except ObjectNotFoundError:
            route = DeliveryRoute.define(code=command.code, **fields)
        else:
            route.revise(**fields)
        repo.add(route)
        logger.info("Delivery route defined", route_code=command.code)
        return route.code

    @handle(DeactivateDeliveryRoute)
    def deactivate_route(self, command):
        repo = current_domain.repository_for(DeliveryRoute)
        route = repo.get(command.code)
        route.deactivate()
        repo.add(route)


@shipping.command(part_of="DeliveryCarrier")
class RegisterCarrier:
    code = String(required=True, max_length=50, choices=DeliveryMethod)
    display_name = String(required=True, max_length=100)
    pricing_rules = Text(required=True)  # JSON, see pricing.py
    carrier_type = String(choices=CarrierType, default=CarrierType.SCHEDULED.value)
    provinces = Text()  # JSON list, empty means nationwide
    cutoff_time = String(max_length=5, default="15:00")
    transit_days = Integer(default=1, min_value=0)
    cod_available = Boolean(default=False)
    priority = Integer(default=100)
    tracking_url_template = String(max_length=500)


@shipping.command(part_of="DeliveryCarrier")
class DeactivateCarrier:
    code = String(required=True, max_length=50)


@shipping.command_handler(part_of=DeliveryCarrier)
class DeliveryCarrierHandler:
    @handle(RegisterCarrier)
    def register_carrier(self, command):
        repo = current_domain.repository_for(DeliveryCarrier)
        terms = dict(
            display_name=command.display_name,
            pricing_rules=command.pricing_rules,
            carrier_type=command.carrier_type,
            provinces=_names(command.provinces),
            cutoff_time=command.cutoff_time,
            transit_days=command.transit_days,
            cod_available=command.cod_available,
            priority=command.priority,
            tracking_url_template=command.tracking_url_template,
        )
        try:
            carrier = repo.get(command.code)
        except ObjectNotFoundError:
            carrier = DeliveryCarrier.register(code=command.code, **terms)
        else:
            carrier.update_terms(**terms)
        repo.add(carrier)
        logger.info("Carrier registered", carrier_code=command.code)
        return carrier.code

    @handle(DeactivateCarrier)
    def deactivate_carrier(self, command):
        repo = current_domain.repository_for(DeliveryCarrier)
        carrier = repo.get(command.code)
        carrier.deactivate()
        repo.add(carrier)
