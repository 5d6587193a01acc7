"""Schema management for relational database providers.

The in-memory provider needs no schema; SQLite and PostgreSQL providers get
their ``orders`` and ``quotes`` tables created from the registered aggregates.
"""

import structlog
from protean.domain import Domain
from sqlalchemy import create_engine

logger = structlog.get_logger(__name__)

RELATIONAL_PROVIDERS = ("sqlite", "postgresql")


def _relational_providers(domain: Domain):
    for name, provider in domain.providers.items():
        if provider.conn_info["provider"] in RELATIONAL_PROVIDERS:
            yield name, provider


def setup_db(domain: Domain) -> list[str]:
    """Create tables on every relational provider. Returns the provider names touched."""
    touched = []
    with domain.domain_context():
        for name, provider in _relational_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])

            # Accessing _dao registers the aggregate's model with the provider's metadata
            for _, record in domain.registry.aggregates.items():
                if record.cls.meta_.provider == name:
                    domain.repository_for(record.cls)._dao  # noqa: B018

            provider._metadata.create_all(engine)
            logger.info("schema_created", provider=name, tables=sorted(provider._metadata.tables))
            touched.append(name)
    return touched


def drop_db(domain: Domain) -> list[str]:
    """Drop the tables created by :func:`setup_db`."""
    touched = []
    with domain.domain_context():
        for name, provider in _relational_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.drop_all(engine)
            logger.info("schema_dropped", provider=name)
            touched.append(name)
    return touched
