"""Central configuration for runtime-tunable parameters.

All constants can be overridden via environment variables so that a peer
can be started with a smaller fleet or a different port without touching
the code, while the automated test-suite passes explicit values.
"""

from __future__ import annotations

import os
from types import MappingProxyType
from typing import Mapping


def _parse_fleet(raw: str) -> list[int]:
    sizes = [int(part) for part in raw.split(",") if part.strip()]
    if not sizes or any(size <= 0 for size in sizes):
        raise ValueError(f"BROADSIDE_FLEET must list positive ship sizes, got {raw!r}")
    return sizes


# ===========================================================================
# Game Constants
# ===========================================================================
# Width and height of every board. Both peers must agree on this value, so
# it is deliberately *not* read from the environment.
BOARD_SIZE: int = 10

# BROADSIDE_FLEET: Comma-separated list of ship sizes placed on each board.
#   Defaults to the classic ten-ship fleet.
#   Example: export BROADSIDE_FLEET=2      (single destroyer, quick games)
FLEET: list[int] = _parse_fleet(os.getenv("BROADSIDE_FLEET", "5,4,4,3,3,3,2,2,2,2"))

# BROADSIDE_RANDOMIZE_ATTEMPTS: Rejection-sampling rounds tried by
#   Board.randomize() before it switches to deterministic slot filling.
#   Defaults to 20000.
RANDOMIZE_MAX_ATTEMPTS: int = int(os.getenv("BROADSIDE_RANDOMIZE_ATTEMPTS", "20000"))


# ===========================================================================
# Network Defaults
# ===========================================================================
# BROADSIDE_HOST: Address the listening peer binds to and the dialing peer
#   connects to when none is given on the command line.
#   Defaults to "127.0.0.1".
DEFAULT_HOST: str = os.getenv("BROADSIDE_HOST", "127.0.0.1")

# BROADSIDE_PORT: Default TCP port for the peer connection.
#   Defaults to 61440.
DEFAULT_PORT: int = int(os.getenv("BROADSIDE_PORT", "61440"))

# BROADSIDE_CONNECT_TIMEOUT: Seconds allowed for dialing and for the key
#   exchange. Once a game is running there is no timeout.
CONNECT_TIMEOUT: float = float(os.getenv("BROADSIDE_CONNECT_TIMEOUT", "10"))

# BROADSIDE_CHAT_MAX_LENGTH: Longest chat line accepted from the peer;
#   longer ones are dropped as malformed. Defaults to 500 characters.
CHAT_MAX_LENGTH: int = int(os.getenv("BROADSIDE_CHAT_MAX_LENGTH", "500"))


# ===========================================================================
# Debugging and Logging
# ===========================================================================
# BROADSIDE_DEBUG: If "1", enables detailed debug logging across modules.
#   Defaults to "0" (disabled).
DEBUG: bool = os.getenv("BROADSIDE_DEBUG", "0") == "1"


# ===========================================================================
# Status Text
# ===========================================================================
# Read-only lookup table of every status line a session can report. Keys
# are the values of broadside.session.Status.
STATUS_MESSAGES: Mapping[str, str] = MappingProxyType(
    {
        "gameStart": "Place your ships (MOVE/FLIP/RANDOM), then FIRE at the enemy board to start the game!",
        "invalidPositions": "All ships must be in valid positions before the game can begin.",
        "waitForStart": "Wait until your enemy places all their ships.",
        "wait": "Wait your turn!",
        "gameOn": "Game on!",
        "yourTurn": "Your turn, bomb now!",
        "hit": "Good hit!",
        "miss": "Miss.",
        "shipSunk": "You sunk a ship!",
        "lostShip": "You lost a ship!",
        "lostGame": "You lost this time.",
        "allSunk": "Congratulations! You won!",
        "connectionLost": "Connection to the enemy was lost. Game abandoned.",
        "handshakeFailed": "Could not decide who starts. Game abandoned.",
    }
)
