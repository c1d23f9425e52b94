import os

import pytest

# Directory name -> marker registered in pyproject.toml
LAYER_MARKERS = {
    "domain": pytest.mark.domain,
    "application": pytest.mark.application,
    "bdd": pytest.mark.bdd,
    "integration": pytest.mark.integration,
}


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="PROTEAN_ENV to load the shipping domain config with (test or production)",
    )


def pytest_sessionstart(session):
    """Activate the shipping domain before any test module is imported.

    Aggregates and handlers register themselves on import, so the domain
    context has to be pushed first for `current_domain` to resolve inside
    test modules and fixtures.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from shipping.domain import shipping

    shipping.init()
    shipping.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Tag every test with the layer it lives in."""
    for item in items:
        parts = item.path.relative_to(config.rootpath).parts
        for layer, marker in LAYER_MARKERS.items():
            if layer in parts:
                item.add_marker(marker)
                break
        if "integration" in parts and item.get_closest_marker("fast") is None:
            item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session", autouse=True)
def setup_db():
    from shipping.domain import shipping
    from shipping.utils.db import drop_db, setup_db

    setup_db(shipping)
    yield
    drop_db(shipping)


@pytest.fixture(autouse=True)
def reset_infrastructure():
    """Wipe stores and swap in fresh carrier and address adapters after each test."""
    yield

    from protean import current_domain

    from shipping.address import reset_address_book
    from shipping.carrier import reset_carrier

    for provider in current_domain.providers.values():
        provider._data_reset()
    current_domain.event_store.store._data_reset()

    reset_carrier()
    reset_address_book()
