import re
from dataclasses import dataclass
from typing import Union

from .config import CHAT_MAX_LENGTH
from .coord_utils import parse_coord


class CommandParseError(Exception):
    """Raised when a line cannot be parsed as a valid command."""


@dataclass(frozen=True)
class ChatCommand:
    text: str


@dataclass(frozen=True)
class FireCommand:
    row: int
    column: int


@dataclass(frozen=True)
class MoveCommand:
    ship: int  # zero-based fleet index
    row: int
    column: int


@dataclass(frozen=True)
class FlipCommand:
    ship: int


@dataclass(frozen=True)
class RandomCommand:
    pass


@dataclass(frozen=True)
class ShowCommand:
    pass


@dataclass(frozen=True)
class QuitCommand:
    pass


Command = Union[ChatCommand, FireCommand, MoveCommand, FlipCommand, RandomCommand, ShowCommand, QuitCommand]

_SHIP_NO_RE = re.compile(r"^[1-9][0-9]*$")


def _parse_coord(raw: str) -> tuple[int, int]:
    try:
        return parse_coord(raw)
    except ValueError as e:
        raise CommandParseError(str(e)) from e


def _parse_ship_no(raw: str) -> int:
    if not _SHIP_NO_RE.match(raw):
        raise CommandParseError(f"Invalid ship number: {raw}")
    return int(raw) - 1


def parse_command(line: str) -> Command:
    if line is None:
        raise CommandParseError("No command to parse")
    raw = line.strip()
    if not raw:
        raise CommandParseError("Empty command")
    parts = raw.split()
    verb = parts[0].upper()
    args = parts[1:]
    if verb == "CHAT":
        text = raw[len(parts[0]):].strip()
        if not text:
            raise CommandParseError("CHAT requires a non-empty message")
        if len(text) > CHAT_MAX_LENGTH:
            raise CommandParseError(f"CHAT messages are limited to {CHAT_MAX_LENGTH} characters")
        return ChatCommand(text=text)
    elif verb == "FIRE":
        if len(args) != 1:
            raise CommandParseError("FIRE requires a coordinate")
        row, column = _parse_coord(args[0])
        return FireCommand(row=row, column=column)
    elif verb == "MOVE":
        if len(args) != 2:
            raise CommandParseError("MOVE requires a ship number and a coordinate")
        ship = _parse_ship_no(args[0])
        row, column = _parse_coord(args[1])
        return MoveCommand(ship=ship, row=row, column=column)
    elif verb == "FLIP":
        if len(args) != 1:
            raise CommandParseError("FLIP requires a ship number")
        return FlipCommand(ship=_parse_ship_no(args[0]))
    elif verb == "RANDOM" and not args:
        return RandomCommand()
    elif verb == "SHOW" and not args:
        return ShowCommand()
    elif verb == "QUIT" and not args:
        return QuitCommand()
    else:
        raise CommandParseError(f"Unknown command: {raw}")
