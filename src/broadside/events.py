"""Event types passed between the boards, the session and its subscribers.

Boards never call back into the session. Instead every board operation
returns one of the *board events* below and GameSession.handle_event()
interprets it synchronously, one event at a time.

The session itself emits ``Event`` objects to subscribers (the CLI renderer,
logging) so that they can react without parsing status strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict, Union

from .protocol import BombResponse


# ---------------------------------------------------------------------------
# Board events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Click:
    """The player tried to fire while it is not their turn."""


@dataclass(frozen=True)
class BombCell:
    """The player fires at (*row*, *column*) on the opponent view."""

    row: int
    column: int


@dataclass(frozen=True)
class PlayerMissed:
    response: BombResponse


@dataclass(frozen=True)
class Hit:
    response: BombResponse


@dataclass(frozen=True)
class ShipSunk:
    response: BombResponse


@dataclass(frozen=True)
class AllSunk:
    response: BombResponse


ShotEvent = Union[PlayerMissed, Hit, ShipSunk, AllSunk]
BoardEvent = Union[Click, BombCell, PlayerMissed, Hit, ShipSunk, AllSunk]


# ---------------------------------------------------------------------------
# Session notifications
# ---------------------------------------------------------------------------


class Category(Enum):
    """High-level event categories."""

    STATUS = auto()  # new status line for the player
    STATE = auto()  # GameState transition
    BOARD = auto()  # a board changed and should be redrawn
    SYSTEM = auto()  # transport failure, abandon
    CHAT = auto()  # chat line sent or received


@dataclass(slots=True)
class Event:
    """Notification emitted by GameSession."""

    category: Category
    type: str  # finer-grained identifier, e.g. "status", "transition", "own", "enemy"
    payload: Dict[str, Any]
