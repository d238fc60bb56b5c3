"""Peer-to-peer game messages.

Every message is a JSON object with a ``type`` field:

readyToPlay    {type, nonce?, reply?}   Own fleet is placed and locked.
passToken      {type}                   The receiver may fire next.
bombCell       {type, cellPos}          Fire at ``cellPos`` on the receiver's board.
bombResponse   {type, cellPos, hit, ship?, allSunk?}
                                        Outcome of the last ``bombCell``,
                                        decided by the board owner.
chat           {type, text}             A line of chat for the other player.

``cellPos`` is ``{"row": r, "column": c}`` and ``ship`` is
``{"row", "column", "isVertical", "size"}``. The optional ``nonce`` and
``reply`` fields of readyToPlay settle who starts when both players ready
up at the same time; peers that omit them still interoperate.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from .config import BOARD_SIZE, CHAT_MAX_LENGTH

logger = logging.getLogger(__name__)


class MessageType(str, enum.Enum):
    """Wire names of the message kinds."""

    READY_TO_PLAY = "readyToPlay"
    PASS_TOKEN = "passToken"
    BOMB_CELL = "bombCell"
    BOMB_RESPONSE = "bombResponse"
    CHAT = "chat"


@dataclass(frozen=True)
class ShipInfo:
    """Position of a sunk ship as revealed by its owner."""

    row: int
    column: int
    is_vertical: bool
    size: int

    def to_dict(self) -> dict[str, Any]:
        return {"row": self.row, "column": self.column, "isVertical": self.is_vertical, "size": self.size}


@dataclass(frozen=True)
class ReadyToPlay:
    nonce: Optional[int] = None
    reply: bool = False


@dataclass(frozen=True)
class PassToken:
    pass


@dataclass(frozen=True)
class BombCell:
    row: int
    column: int


@dataclass(frozen=True)
class BombResponse:
    row: int
    column: int
    hit: bool
    ship: Optional[ShipInfo] = None
    all_sunk: bool = False


@dataclass(frozen=True)
class Chat:
    text: str


Message = Union[ReadyToPlay, PassToken, BombCell, BombResponse, Chat]


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def encode(msg: Message) -> dict[str, Any]:
    """Return the JSON-ready dict for *msg*."""
    if isinstance(msg, ReadyToPlay):
        out: dict[str, Any] = {"type": MessageType.READY_TO_PLAY.value}
        if msg.nonce is not None:
            out["nonce"] = msg.nonce
        if msg.reply:
            out["reply"] = True
        return out
    if isinstance(msg, PassToken):
        return {"type": MessageType.PASS_TOKEN.value}
    if isinstance(msg, BombCell):
        return {"type": MessageType.BOMB_CELL.value, "cellPos": {"row": msg.row, "column": msg.column}}
    if isinstance(msg, BombResponse):
        out = {
            "type": MessageType.BOMB_RESPONSE.value,
            "cellPos": {"row": msg.row, "column": msg.column},
            "hit": msg.hit,
        }
        if msg.ship is not None:
            out["ship"] = msg.ship.to_dict()
        if msg.all_sunk:
            out["allSunk"] = True
        return out
    if isinstance(msg, Chat):
        return {"type": MessageType.CHAT.value, "text": msg.text}
    raise TypeError(f"Not a protocol message: {msg!r}")


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


class _Malformed(Exception):
    """Internal signal: a field is missing or has the wrong type."""


def _int_field(obj: dict, key: str) -> int:
    val = obj.get(key)
    # bool is an int subclass; reject it explicitly
    if not isinstance(val, int) or isinstance(val, bool):
        raise _Malformed(f"{key} must be an integer")
    return val


def _bool_field(obj: dict, key: str, default: bool | None = None) -> bool:
    if key not in obj and default is not None:
        return default
    val = obj.get(key)
    if not isinstance(val, bool):
        raise _Malformed(f"{key} must be a boolean")
    return val


def _cell_pos(obj: dict) -> tuple[int, int]:
    pos = obj.get("cellPos")
    if not isinstance(pos, dict):
        raise _Malformed("cellPos missing")
    row, column = _int_field(pos, "row"), _int_field(pos, "column")
    if not (0 <= row < BOARD_SIZE and 0 <= column < BOARD_SIZE):
        raise _Malformed(f"cellPos ({row},{column}) off the board")
    return row, column


def _ship_info(obj: Any) -> ShipInfo:
    if not isinstance(obj, dict):
        raise _Malformed("ship must be an object")
    info = ShipInfo(
        row=_int_field(obj, "row"),
        column=_int_field(obj, "column"),
        is_vertical=_bool_field(obj, "isVertical"),
        size=_int_field(obj, "size"),
    )
    if info.size <= 0:
        raise _Malformed("ship size must be positive")
    end_row = info.row + (info.size - 1 if info.is_vertical else 0)
    end_column = info.column + (0 if info.is_vertical else info.size - 1)
    if not (0 <= info.row and 0 <= info.column and end_row < BOARD_SIZE and end_column < BOARD_SIZE):
        raise _Malformed(f"ship at ({info.row},{info.column}) size {info.size} off the board")
    return info


def _text_field(obj: dict) -> str:
    text = obj.get("text")
    if not isinstance(text, str) or not text.strip():
        raise _Malformed("text must be a non-empty string")
    if len(text) > CHAT_MAX_LENGTH:
        raise _Malformed(f"text longer than {CHAT_MAX_LENGTH} characters")
    return text


def decode(obj: Any) -> Message | None:
    """Parse an inbound JSON object into a message.

    Returns ``None`` for anything unknown or malformed; such messages are
    dropped by the caller without raising.
    """
    if not isinstance(obj, dict) or "type" not in obj:
        logger.debug("Dropping message without type: %r", obj)
        return None
    try:
        mtype = MessageType(obj["type"])
    except ValueError:
        logger.debug("Dropping unknown message type %r", obj.get("type"))
        return None

    try:
        if mtype is MessageType.READY_TO_PLAY:
            nonce = _int_field(obj, "nonce") if "nonce" in obj else None
            return ReadyToPlay(nonce=nonce, reply=_bool_field(obj, "reply", default=False))
        if mtype is MessageType.PASS_TOKEN:
            return PassToken()
        if mtype is MessageType.BOMB_CELL:
            row, column = _cell_pos(obj)
            return BombCell(row, column)
        if mtype is MessageType.CHAT:
            return Chat(_text_field(obj))
        # BOMB_RESPONSE
        row, column = _cell_pos(obj)
        ship = _ship_info(obj["ship"]) if "ship" in obj else None
        return BombResponse(
            row,
            column,
            hit=_bool_field(obj, "hit"),
            ship=ship,
            all_sunk=_bool_field(obj, "allSunk", default=False),
        )
    except (TypeError, _Malformed) as exc:
        logger.debug("Dropping malformed %s message: %s", mtype.value, exc)
        return None
