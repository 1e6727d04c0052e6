import pytest

from presence.messaging.router import MessageRouter
from presence.server.app import create_app
from presence.server.settings import PresenceServerSettings
from presence.session.controller import ConnectionLifecycleController
from presence.session.registry import SessionRegistry
from presence.tests.mocks import FakeClock, MockConnection


@pytest.fixture
def clock():
    return FakeClock(start_ms=1_000.0)


@pytest.fixture
def registry():
    return SessionRegistry(max_players=5)


@pytest.fixture
def controller(registry, clock):
    return ConnectionLifecycleController(
        registry,
        clock=clock,
        movement_throttle_ms=50,
        liveness_window_ms=10_000,
        reaper_interval_seconds=30,
    )


@pytest.fixture
def message_router(controller):
    return MessageRouter(controller)


@pytest.fixture
def mock_connection():
    return MockConnection()


@pytest.fixture
def settings():
    return PresenceServerSettings(max_players=2)


@pytest.fixture
def app(settings):
    return create_app(settings=settings)
