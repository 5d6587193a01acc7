import os
from pathlib import Path

import pytest

_MARKERS_BY_DIRECTORY = {
    "/domain/": "domain",
    "/application/": "application",
    "/bdd/": "bdd",
    "/integration/": "integration",
}


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Protean environment (PROTEAN_ENV) to run the suite against",
    )


def pytest_sessionstart(session):
    """Initialize the bidding domain once and keep its context active for the whole session.

    Tests can then use `current_domain` without pushing a context themselves.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from bidding.domain import bidding

    bidding.init()
    bidding.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Mark each test after the layer directory it lives in."""
    for item in items:
        test_path = str(Path(item.fspath))
        for fragment, marker in _MARKERS_BY_DIRECTORY.items():
            if fragment in test_path:
                item.add_marker(getattr(pytest.mark, marker))
                break

        if item.get_closest_marker("integration") and not item.get_closest_marker("fast"):
            item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session", autouse=True)
def database_schema():
    from bidding.domain import bidding
    from bidding.utils.db import drop_db, setup_db

    setup_db(bidding)
    yield
    drop_db(bidding)


@pytest.fixture(autouse=True)
def reset_stores():
    """Empty every database provider and the event store after each test."""
    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    current_domain.event_store.store._data_reset()
