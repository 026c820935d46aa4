"""Command words of the newline-delimited text protocol.

Each line is one command or event: the first space-separated token is the
command word, the rest are arguments.
"""

from enum import StrEnum


class ClientCommand(StrEnum):
    """Lines the client writes."""

    HELLO = "HELLO"
    LIST = "LIST"
    CREATE = "CREATE"
    JOIN = "JOIN"
    REJOIN = "REJOIN"
    LEAVE = "LEAVE"
    PLACING_START = "PLACING_START"
    PLACE = "PLACE"
    PLACING_STOP = "PLACING_STOP"
    SHOOT = "SHOOT"
    PONG = "PONG"


class ServerLine(StrEnum):
    """Command words the server sends."""

    WELCOME = "WELCOME"
    ROOMS = "ROOMS"
    ROOM = "ROOM"
    ROOM_CLOSED = "ROOM_CLOSED"
    JOINED = "JOINED"
    WAIT = "WAIT"
    SETUP = "SETUP"
    PHASE = "PHASE"
    SHIPS_OK = "SHIPS_OK"
    OPPONENT_READY = "OPPONENT_READY"
    ERROR = "ERROR"
    PLAY = "PLAY"
    YOUR_TURN = "YOUR_TURN"
    OPP_TURN = "OPP_TURN"
    WATER = "WATER"
    HIT = "HIT"
    SINK = "SINK"
    SUNK = "SUNK"
    WIN = "WIN"
    LOSE = "LOSE"
    OPP_WATER = "OPP_WATER"
    OPP_HIT = "OPP_HIT"
    OPP_SINK = "OPP_SINK"
    BENEMY = "BENEMY"
    BSELF = "BSELF"
    LEFT = "LEFT"
    RETURNED_TO_LOBBY = "RETURNED_TO_LOBBY"
    OPPONENT_LEFT = "OPPONENT_LEFT"
    PING = "PING"


# Commands that change room membership. The server answers them with its own
# events, so they never trigger an automatic LIST.
MEMBERSHIP_COMMANDS = frozenset(
    {
        ClientCommand.LIST,
        ClientCommand.CREATE,
        ClientCommand.JOIN,
        ClientCommand.REJOIN,
        ClientCommand.LEAVE,
    },
)

SHIP_SUBMISSION_COMMANDS = frozenset(
    {
        ClientCommand.PLACING_START,
        ClientCommand.PLACE,
        ClientCommand.PLACING_STOP,
    },
)

# Prefixes of server rejections that invalidate the submitted fleet.
SHIP_REJECTION_PREFIXES = ("ERROR SHIPS", "ERROR READY", "ERROR PLACE")

SETUP_LINES = frozenset({"SETUP", "PHASE SETUP"})
PLAY_LINES = frozenset({"PLAY", "PHASE GAME", "PHASE PLAY"})
