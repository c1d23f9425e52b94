"""Locust entry point for the shipping dispatch API.

Users:
    DeliveryUser     options, task creation, status lifecycle, tracking
    ContentionUser   duplicate task creation for the same order
    DispatcherUser   planning batches and pickup runs competing for the lease

Usage:
    locust -f loadtests/locustfile.py --host http://localhost:8000
    locust -f loadtests/locustfile.py DeliveryUser --headless -u 50 -r 5 -t 300s --csv=results/dispatch
"""

import logging

import requests
from locust import events

from loadtests.data_generators import SEED_CARRIERS, SEED_ROUTES, SEED_VEHICLES
from loadtests.helpers.response import extract_error_detail
from loadtests.scenarios.contention import ContentionUser  # noqa: F401
from loadtests.scenarios.deliveries import DeliveryUser  # noqa: F401
from loadtests.scenarios.planning import DispatcherUser  # noqa: F401

logger = logging.getLogger("loadtest")

# Reference data every user depends on, seeded once per run
_SEEDS = (
    ("/delivery-routes", SEED_ROUTES),
    ("/carriers", SEED_CARRIERS),
    ("/vehicles", SEED_VEHICLES),
)


@events.request.add_listener
def log_failed_request(request_type, name, response, exception, **_kwargs):
    if exception is not None:
        logger.error("%s %s raised %s", request_type, name, exception)
        return
    if response is not None and response.status_code >= 400:
        logger.warning("%s %s -> %s %s", request_type, name, response.status_code, extract_error_detail(response))


@events.test_start.add_listener
def seed_reference_data(environment, **_kwargs):
    if not environment.host:
        logger.warning("No --host given, skipping reference data seeding")
        return

    with requests.Session() as session:
        for path, payloads in _SEEDS:
            for payload in payloads:
                resp = session.post(f"{environment.host}{path}", json=payload, timeout=10)
                # Plates from a previous run are already registered
                if resp.status_code >= 400 and path != "/vehicles":
                    logger.error("Seeding %s failed: %s", path, extract_error_detail(resp))
    logger.info(
        "Seeded %d routes, %d carriers, %d vehicles on %s",
        len(SEED_ROUTES),
        len(SEED_CARRIERS),
        len(SEED_VEHICLES),
        environment.host,
    )


@events.test_stop.add_listener
def report_failures(environment, **_kwargs):
    failures = sorted(environment.stats.errors.values(), key=lambda e: e.occurrences, reverse=True)
    for error in failures[:10]:
        logger.info("%5d x %s %s: %s", error.occurrences, error.method, error.name, error.error)
