"""Shipping domain API package."""

from shipping.api.errors import register_dispatch_error_handlers
from shipping.api.routes import carrier_router, delivery_router, route_router, vehicle_router

__all__ = [
    "delivery_router",
    "route_router",
    "carrier_router",
    "vehicle_router",
    "register_dispatch_error_handlers",
]
