"""Schema management for SQL-backed providers.

The memory provider used under PROTEAN_ENV=test needs none of this; the
functions are no-ops unless a provider points at SQLite or Postgres.
"""

from protean.domain import Domain
from sqlalchemy import create_engine


def _sql_providers(domain: Domain):
    for provider in domain.providers.values():
        if provider.conn_info["provider"] in ("sqlite", "postgresql"):
            yield provider, create_engine(provider.conn_info["database_uri"])


def _load_models(domain: Domain, provider_name: str) -> None:
    # A repository's SQLAlchemy model is only built on first DAO access
    registry = domain.registry
    for records in (registry.aggregates, registry.entities, registry.projections):
        for record in records.values():
            if record.cls.meta_.provider == provider_name:
                domain.repository_for(record.cls)._dao  # noqa: B018


def setup_db(domain: Domain) -> None:
    """Create tables for tasks, manifests, leases, reference data and projections."""
    with domain.domain_context():
        for provider, engine in _sql_providers(domain):
            _load_models(domain, provider.name)
            provider._metadata.create_all(engine)


def drop_db(domain: Domain) -> None:
    with domain.domain_context():
        for provider, engine in _sql_providers(domain):
            provider._metadata.drop_all(engine)
