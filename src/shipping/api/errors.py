"""HTTP mapping for dispatch errors.

Each dispatch error kind gets its own status code and a uniform body:

    {"error": "<kind>", "detail": {field: [messages]}}

Dispatch errors subclass Protean's ``ValidationError``; Starlette resolves
handlers along the exception's MRO, so these take precedence over the generic
400 handler from ``protean.integrations.fastapi`` when both are registered.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError

from shipping.errors import (
    DeliveryConflictError,
    ExternalServiceError,
    InvalidCODError,
    InvalidTransitionError,
    NoCoverageError,
    PlanningInProgressError,
)

# exception class -> (error kind, HTTP status)
ERROR_STATUS = {
    ObjectNotFoundError: ("not_found", 404),
    DeliveryConflictError: ("conflict", 409),
    InvalidTransitionError: ("invalid_transition", 412),
    NoCoverageError: ("no_coverage", 422),
    InvalidCODError: ("invalid_cod", 400),
    PlanningInProgressError: ("planning_in_progress", 423),
}


def _detail(exc: Exception):
    messages = getattr(exc, "messages", None)
    return messages if messages else str(exc)


async def dispatch_error_handler(request: Request, exc: Exception) -> JSONResponse:
    kind, status_code = next(ERROR_STATUS[cls] for cls in type(exc).__mro__ if cls in ERROR_STATUS)
    return JSONResponse(status_code=status_code, content={"error": kind, "detail": _detail(exc)})


async def external_service_error_handler(request: Request, exc: ExternalServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=502,
        content={
            "error": "external_service",
            "detail": {"carrier_code": exc.carrier_code, "message": exc.message},
        },
    )


def register_dispatch_error_handlers(app: FastAPI) -> None:
    """Install the dispatch error mapping on a FastAPI app."""
    for exc_class in ERROR_STATUS:
        app.add_exception_handler(exc_class, dispatch_error_handler)
    app.add_exception_handler(ExternalServiceError, external_service_error_handler)
