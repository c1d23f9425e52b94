"""Shipping dispatch HTTP API.

Delivery options, task creation and status updates, carrier webhooks, and
the daily planning batch are served from one FastAPI app. Commands are
processed synchronously inside the request; with PROTEAN_ENV=production the
projectors and the order-cancellation handler run in the Engine instead
(see server.py).

Usage:
    uvicorn app:app --app-dir src --port 8000 --reload
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from protean.integrations.fastapi import register_exception_handlers

from shipping.api import (
    carrier_router,
    delivery_router,
    register_dispatch_error_handlers,
    route_router,
    vehicle_router,
)
from shipping.domain import shipping

shipping.init()

# Paths served without a domain context
_CONTEXT_FREE = ("/health", "/docs", "/redoc", "/openapi.json")

app = FastAPI(
    title="Shipping Dispatch API",
    description="Delivery options, delivery tasks and daily route planning",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["*"],
)


@app.middleware("http")
async def shipping_context(request: Request, call_next):
    if request.url.path.startswith(_CONTEXT_FREE):
        return await call_next(request)
    with shipping.domain_context():
        return await call_next(request)


for router in (delivery_router, route_router, carrier_router, vehicle_router):
    app.include_router(router)

register_exception_handlers(app)
register_dispatch_error_handlers(app)


@app.get("/health")
async def health():
    return {"status": "ok", "domain": shipping.name}
