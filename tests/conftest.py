"""
Pytest configuration and fixtures for testing.

This module provides shared fixtures for the session registry, the
connection manager and an application test client.
"""

import os

import pytest

# Keep error logs of the test run out of the working tree
os.environ.setdefault("LOG_FILE_PATH", os.devnull)

from chat_relay.managers.session_registry import (  # noqa: E402
    SessionRegistry,
    session_registry,
)
from chat_relay.managers.websocket_connection_manager import (  # noqa: E402
    ConnectionManager,
)


@pytest.fixture(autouse=True)
def clean_session_registry():
    """
    Empties the process-wide session registry around every test.

    Consumers and the application share one registry, so sessions left
    behind by one test would leak into the next.
    """
    session_registry.clear()
    yield
    session_registry.clear()


@pytest.fixture
def registry():
    """
    Provides an empty, test-local SessionRegistry.

    Returns:
        SessionRegistry: Fresh registry instance
    """
    return SessionRegistry()


@pytest.fixture
def manager(registry):
    """
    Provides a ConnectionManager bound to the test-local registry.

    Args:
        registry: Fixture providing the registry

    Returns:
        ConnectionManager: Manager broadcasting to `registry`
    """
    return ConnectionManager(registry)


@pytest.fixture
def client():
    """
    Provides a TestClient running the full application.

    The client is used as a context manager so that every WebSocket
    session opened through it shares one event loop.

    Yields:
        TestClient: Client for HTTP and WebSocket requests
    """
    from fastapi.testclient import TestClient

    from chat_relay import application

    with TestClient(application()) as test_client:
        yield test_client
