from presence.tests.mocks.clock import FakeClock
from presence.tests.mocks.connection import MockConnection

__all__ = ["FakeClock", "MockConnection"]
