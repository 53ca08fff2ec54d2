"""Shared pytest fixtures and configuration."""

import pytest

from relaybroker.sessions import (
    Declaration,
    LifecycleManager,
    RelayDispatcher,
    SessionEngine,
    SessionTable,
)


@pytest.fixture
def table():
    """An empty session table."""
    return SessionTable()


@pytest.fixture
def engine(table):
    return SessionEngine(table)


@pytest.fixture
def dispatcher(table):
    return RelayDispatcher(table)


@pytest.fixture
def lifecycle(table):
    return LifecycleManager(table)


@pytest.fixture
def declare(engine):
    """Shorthand: declare(conn, client, target, key) -> PairingResult."""

    def _declare(connection_id, client_id, target_id, key):
        return engine.declare(connection_id, Declaration(client_id, target_id, key))

    return _declare
