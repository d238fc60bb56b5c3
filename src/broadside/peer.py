"""Command-line peer: one player's terminal for a broadside match.

    python -m broadside.peer --listen [--port 61440]
    python -m broadside.peer --connect 192.168.1.20[:61440]

Runs a single-threaded select() loop over stdin and the peer socket, so
local commands and peer messages are always handled one at a time.
"""

from __future__ import annotations

import argparse
import logging
import select
import sys
from typing import Optional, Sequence, TextIO

from . import config as _cfg
from .board import PlacementLockedError
from .commands import (
    ChatCommand,
    CommandParseError,
    FireCommand,
    FlipCommand,
    MoveCommand,
    QuitCommand,
    RandomCommand,
    ShowCommand,
    parse_command,
)
from .events import Category, Event
from .framing import FrameError
from .render import render_boards
from .session import GameSession, Status
from .transport import ConnectionClosed, PeerConnection

logger = logging.getLogger(__name__)

HELP = "Commands: CHAT <text> | FIRE <coord> | MOVE <n> <coord> | FLIP <n> | RANDOM | SHOW | QUIT"


def _prompt(out: TextIO) -> None:
    """Display the user-input prompt."""
    print(">> ", end="", flush=True, file=out)


def _show(session: GameSession, out: TextIO) -> None:
    print("\n" + render_boards(session.enemy_board, session.my_board), file=out)


def _printer(session: GameSession, out: TextIO):
    def on_event(ev: Event) -> None:
        if ev.category is Category.STATUS:
            print(f"\n{ev.payload['text']}", file=out)
            if ev.payload["status"] is Status.YOUR_TURN:
                _show(session, out)
        elif ev.category is Category.BOARD and ev.type == "enemy":
            _show(session, out)
        elif ev.category is Category.CHAT and ev.type == "peer":
            print(f"\n[opponent] {ev.payload['text']}", file=out)

    return on_event


def handle_line(session: GameSession, line: str, out: TextIO = sys.stdout) -> bool:
    """Apply one line of player input. Returns False when the player quits."""
    try:
        cmd = parse_command(line)
    except CommandParseError as e:
        print(f"ERR {e}\n{HELP}", file=out)
        return True

    if isinstance(cmd, QuitCommand):
        return False
    if isinstance(cmd, ShowCommand):
        _show(session, out)
        return True
    if isinstance(cmd, FireCommand):
        session.fire(cmd.row, cmd.column)
        return True
    if isinstance(cmd, ChatCommand):
        session.chat(cmd.text)
        return True

    try:
        if isinstance(cmd, MoveCommand):
            ok = session.move_ship(cmd.ship, cmd.row, cmd.column)
        elif isinstance(cmd, FlipCommand):
            ok = session.flip_ship(cmd.ship)
        elif isinstance(cmd, RandomCommand):
            ok = session.randomize_fleet()
        else:
            raise TypeError(f"Unhandled command {cmd!r}")
    except PlacementLockedError as e:
        print(f"ERR {e}", file=out)
        return True
    except IndexError:
        print(f"ERR You only have {len(session.my_board.ships)} ships", file=out)
        return True
    _show(session, out)
    if not ok:
        print("Ships overlap or leave the board ('!' marks overlaps).", file=out)
    return True


def run(session: GameSession, conn: PeerConnection, stdin: TextIO = sys.stdin, out: TextIO = sys.stdout) -> int:
    """Drive *session* until the game ends, the link drops, or the player quits."""
    print(HELP, file=out)
    _show(session, out)
    while not session.finished:
        _prompt(out)
        readable, _, _ = select.select([conn, stdin], [], [])
        try:
            if conn in readable:
                session.handle_message(conn.recv())
            if stdin in readable and not session.finished:
                line = stdin.readline()
                if not line or not handle_line(session, line, out):
                    logger.info("Player quit")
                    return 0
        except (ConnectionClosed, FrameError) as exc:
            session.abandon(str(exc))

    _show(session, out)
    print(f"Game finished ({session.outcome}) after {session.elapsed:.1f} s", file=out)
    return 1 if session.outcome == "abandoned" else 0


def _split_hostport(value: str, default_port: int) -> tuple[str, int]:
    host, sep, port = value.rpartition(":")
    if not sep:
        return value, default_port
    return host, int(port)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Two-player peer-to-peer battleship")
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--listen", action="store_true", help="wait for the opponent to connect")
    mode.add_argument("--connect", metavar="HOST[:PORT]", help="connect to a listening opponent")
    parser.add_argument("--host", default=_cfg.DEFAULT_HOST, help="bind address when listening")
    parser.add_argument("--port", type=int, default=_cfg.DEFAULT_PORT)
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    args = parser.parse_args(argv)

    # Logging setup respects global DEBUG flag
    logging.basicConfig(
        level=logging.DEBUG if (_cfg.DEBUG or args.debug) else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        if args.listen:
            conn = PeerConnection.listen(args.host, args.port)
        else:
            try:
                host, port = _split_hostport(args.connect, args.port)
            except ValueError:
                parser.error(f"bad --connect value {args.connect!r}")
            conn = PeerConnection.connect(host, port)
    except (OSError, FrameError) as exc:
        logger.error("Could not establish peer connection: %s", exc)
        return 1

    with conn:
        session = GameSession(conn.send)
        session.subscribe(_printer(session, sys.stdout))
        print(session.status.text if session.status else "")
        return run(session, conn)


if __name__ == "__main__":
    sys.exit(main())
