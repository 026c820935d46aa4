import pytest

from game.messaging.events import Connected
from game.messaging.mock import MockOutbox
from game.messaging.router import ProtocolRouter
from game.session.heartbeat import LivenessWatchdog
from game.tests.helpers.flow import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def outbox():
    return MockOutbox()


@pytest.fixture
def router(outbox, clock):
    """A router that has just seen a successful connection."""
    r = ProtocolRouter(outbox, LivenessWatchdog(timeout=5.0, clock=clock))
    r.handle_event(Connected(host="127.0.0.1", port=5555, nick="alice"))
    outbox.clear()
    return r
