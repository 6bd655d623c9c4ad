"""Test doubles for unit testing.

Test doubles are fake implementations of interfaces used for testing.
They're faster and more reliable than mocking, and they implement the
actual interface contracts.

Types of test doubles:
- Fake: Lightweight working implementation (e.g., in-memory transport)
- Stub: Returns predetermined values
- Spy: Records calls for verification
- Mock: Verifies interactions (use unittest.mock for this)

Example:
    >>> from tests.doubles import FakeTransportFactory
    >>> factory = FakeTransportFactory()
    >>> manager = ConnectionManager(config, FakeTokenProvider(token), factory)
    >>> await manager.connect("room-1")
    >>> factory.latest.sent
    [('join', {'group_id': 'room-1'})]
"""

from .fake_token_provider import FakeTokenProvider, make_token
from .fake_transport import FakeTransport, FakeTransportFactory
from .timing import RecordingSleep, wait_until

__all__ = [
    "FakeTokenProvider",
    "FakeTransport",
    "FakeTransportFactory",
    "RecordingSleep",
    "make_token",
    "wait_until",
]
