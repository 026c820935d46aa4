import asyncio

import pytest

from game.client.settings import ClientSettings
from game.logic.enums import Phase
from game.logic.exceptions import TransportError
from game.messaging.events import LivenessTick
from game.messaging.mock import MockTransport
from game.session.manager import SessionManager
from game.tests.helpers.flow import FLEET_ANCHORS, FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manager(clock):
    return SessionManager(
        ClientSettings(host="127.0.0.1", port=5555, nick="alice", liveness_check_interval_seconds=60),
        transport_factory=MockTransport,
        clock=clock,
    )


@pytest.fixture
async def connected(manager):
    assert await manager.connect()
    manager.process_pending()
    yield manager
    await manager.stop()


async def settle(manager: SessionManager) -> None:
    """Let send tasks run, then dispatch whatever they queued."""
    for _ in range(5):
        await asyncio.sleep(0)
    manager.process_pending()


def written(manager: SessionManager) -> list[str]:
    return manager.transport.written_lines


class TestConnect:
    async def test_connect_enters_lobby(self, connected):
        assert connected.is_connected
        assert connected.phase is Phase.LOBBY
        assert written(connected) == ["HELLO alice"]
        assert "Connected." in connected.log

    async def test_invalid_port(self, manager):
        assert not await manager.connect(port=70000)
        manager.process_pending()

        assert manager.log == ("Invalid port.",)
        assert not manager.is_connected

    async def test_empty_nick(self, manager):
        assert not await manager.connect(nick="   ")
        manager.process_pending()

        assert manager.log == ("Nick is empty.",)
        assert written(manager) == []

    @pytest.mark.parametrize("nick", ["bad nick", "bad\nnick", "bad\rnick"])
    async def test_nick_with_whitespace(self, manager, nick):
        assert not await manager.connect(nick=nick)
        manager.process_pending()

        assert manager.log == ("Nick must not contain spaces or line breaks.",)
        assert not manager.is_connected
        assert written(manager) == []

    async def test_second_connect_reports_failure(self, connected):
        assert not await connected.connect()
        connected.process_pending()

        assert connected.log[-1] == "Connect failed: Already connected."

    async def test_disconnect_returns_to_none(self, connected):
        await connected.disconnect()
        connected.process_pending()

        assert connected.phase is Phase.NONE
        assert not connected.router.lobby.connected


class TestOutbound:
    async def test_ping_answered(self, connected):
        connected.transport.simulate_line("PING")
        connected.process_pending()
        await settle(connected)

        assert written(connected)[-1] == "PONG"

    async def test_welcome_triggers_list(self, connected):
        connected.transport.simulate_line("WELCOME")
        connected.process_pending()
        await settle(connected)

        assert written(connected)[-1] == "LIST"

    async def test_send_raw_in_lobby_auto_lists(self, connected):
        connected.send_raw("HELP")
        await settle(connected)

        assert written(connected)[-2:] == ["HELP", "LIST"]

    async def test_membership_commands_do_not_auto_list(self, connected):
        connected.create_room()
        connected.join_room(4)
        connected.rejoin_room(5)
        await settle(connected)

        assert written(connected)[1:] == ["CREATE", "JOIN 4", "REJOIN 5"]

    async def test_ship_submission_sequence(self, connected):
        for line in ("JOINED 7 1", "SETUP"):
            connected.transport.simulate_line(line)
        connected.process_pending()
        for x, y in FLEET_ANCHORS:
            assert connected.place_at(x, y)

        assert connected.submit_ready()
        await settle(connected)

        assert written(connected)[1:] == [
            "PLACING_START",
            "PLACE 0 0 5 H",
            "PLACE 0 2 4 H",
            "PLACE 0 4 3 H",
            "PLACE 0 6 3 H",
            "PLACE 0 8 2 H",
            "PLACING_STOP",
        ]

    async def test_failed_submission_unlocks_setup(self, connected):
        for line in ("JOINED 7 1", "SETUP"):
            connected.transport.simulate_line(line)
        connected.process_pending()
        for x, y in FLEET_ANCHORS:
            connected.place_at(x, y)
        connected.transport.fail_sends_with(TransportError("broken pipe"))

        connected.submit_ready()
        await settle(connected)

        assert not connected.router.setup.sending
        assert connected.router.setup.status == "Send failed: broken pipe"

    async def test_send_after_disconnect_reports_not_connected(self, connected):
        await connected.disconnect()
        connected.process_pending()

        connected.list_rooms()
        await settle(connected)

        assert "Send failed: LIST (Not connected.)" in connected.log


    async def test_send_raw_with_line_break_reports_failure(self, connected):
        connected.send_raw("CREATE\rLIST")
        await settle(connected)

        failures = [entry for entry in connected.log if entry.startswith("Send failed: CREATE\rLIST")]
        assert len(failures) == 1
        assert "line breaks" in failures[0]
        assert written(connected) == ["HELLO alice", "LIST"]
        assert connected.is_connected


class TestLeave:
    async def test_leave_refused_outside_room(self, connected):
        assert not connected.leave()
        await settle(connected)

        assert written(connected) == ["HELLO alice"]

    async def test_leave_while_waiting(self, connected):
        connected.transport.simulate_line("JOINED 7 1")
        connected.process_pending()

        assert connected.leave()
        await settle(connected)

        assert written(connected)[-1] == "LEAVE"

    async def test_leave_in_game(self, connected):
        for line in ("JOINED 7 1", "SETUP", "PLAY"):
            connected.transport.simulate_line(line)
        connected.process_pending()

        assert connected.leave()
        await settle(connected)

        assert written(connected)[-1] == "LEAVE"
        assert connected.router.game.status == "Leaving…"


class TestLiveness:
    async def test_silent_server_forces_disconnect(self, connected, clock):
        connected.transport.simulate_line("PING")
        connected.process_pending()
        await settle(connected)

        connected.inbox.put_nowait(LivenessTick(now=clock.advance(6)))
        connected.process_pending()
        await settle(connected)

        assert not connected.is_connected
        assert connected.phase is Phase.NONE
        assert "No PING for 5s - disconnecting (liveness timeout)." in connected.log


class TestDispatchLoop:
    async def test_run_consumes_queue(self, manager):
        manager.start()
        await manager.connect()
        manager.transport.simulate_line("ROOMS 2")
        for _ in range(10):
            await asyncio.sleep(0)

        assert manager.router.lobby.expected_room_count == 2
        await manager.stop()

    async def test_handler_error_does_not_stop_dispatch(self, manager, monkeypatch):
        def explode(_line):
            raise RuntimeError("boom")

        await manager.connect()
        manager.process_pending()
        monkeypatch.setattr(manager.router.lobby, "handle_line", explode)
        manager.transport.simulate_line("ROOMS 1")

        assert manager.process_pending() == 1
        assert manager.phase is Phase.LOBBY
        await manager.stop()
