"""Two-player game session: the turn state machine for one peer.

A GameSession owns the local player's OwnBoard and an OpponentBoard view of
the enemy. It is driven by two kinds of input, each handled to completion
before the next one is looked at:

local input      fire(row, col), move_ship(), flip_ship(), randomize_fleet(), chat()
peer messages    handle_message(obj) with a decoded JSON object

Outbound messages go through the ``send`` callable given to the
constructor (normally PeerConnection.send).

State transitions
-----------------
BEGIN        --fire, fleet valid-->        I_AM_READY   (send readyToPlay)
BEGIN        --recv readyToPlay-->         ENEMY_READY
ENEMY_READY  --fire, fleet valid-->        ENEMY_TURN   (send readyToPlay, passToken)
I_AM_READY   --recv passToken-->           MY_TURN
MY_TURN      --fire-->                     MY_TURN      (send bombCell, await bombResponse)
MY_TURN      --recv bombResponse-->        ENEMY_TURN   (send passToken) or FINISHED
ENEMY_TURN   --recv bombCell-->            ENEMY_TURN   (send bombResponse) or FINISHED
ENEMY_TURN   --recv passToken-->           MY_TURN

Hit/miss is always decided by the owner of the board being fired at; the
firing side only replays the bombResponse it receives.
Chat lines may be exchanged in any state before FINISHED and never change
the state.
"""

from __future__ import annotations

import enum
import logging
import random
import time
from typing import Any, Callable, List, Optional, Sequence

from . import config as _cfg
from .board import OpponentBoard, OwnBoard
from .coord_utils import format_coord
from .events import AllSunk, BoardEvent, BombCell, Category, Click, Event, Hit, PlayerMissed, ShipSunk
from .protocol import BombResponse, Chat, Message, PassToken, ReadyToPlay, decode, encode
from .protocol import BombCell as BombCellMsg

logger = logging.getLogger(__name__)


class GameState(enum.Enum):
    BEGIN = 0
    ENEMY_READY = 1
    I_AM_READY = 2
    ENEMY_TURN = 3
    MY_TURN = 4
    FINISHED = 5


# passToken is only honoured once this side has readied up.
_TOKEN_STATES = frozenset({GameState.I_AM_READY, GameState.ENEMY_TURN, GameState.MY_TURN})


class Status(str, enum.Enum):
    """Status lines shown to the player; texts live in config.STATUS_MESSAGES."""

    GAME_START = "gameStart"
    INVALID_POSITIONS = "invalidPositions"
    WAIT_FOR_START = "waitForStart"
    WAIT = "wait"
    GAME_ON = "gameOn"
    YOUR_TURN = "yourTurn"
    HIT = "hit"
    MISS = "miss"
    SHIP_SUNK = "shipSunk"
    LOST_SHIP = "lostShip"
    LOST_GAME = "lostGame"
    ALL_SUNK = "allSunk"
    CONNECTION_LOST = "connectionLost"
    HANDSHAKE_FAILED = "handshakeFailed"

    @property
    def text(self) -> str:
        return _cfg.STATUS_MESSAGES[self.value]


class GameSession:
    """State machine for one side of a match."""

    def __init__(
        self,
        send: Callable[[dict], None],
        *,
        ship_sizes: Optional[Sequence[int]] = None,
        rng: Optional[random.Random] = None,
        nonce: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Create a session and randomly place the local fleet.

        Args:
            send: Callable that delivers one JSON-ready dict to the peer.
            ship_sizes: Fleet to place, defaults to ``config.FLEET``.
            rng: Random source for fleet placement.
            nonce: Tie-break value for simultaneous readyToPlay; random if omitted.
            clock: Monotonic time source used for the game duration.
        """
        self._send_obj = send
        self.rng = rng or random.Random()
        self.nonce = nonce if nonce is not None else random.SystemRandom().getrandbits(63)
        self._clock = clock
        self.start_time = clock()
        self.duration: float | None = None

        self.state = GameState.BEGIN
        self.status: Status | None = None
        # "won", "lost" or "abandoned" once FINISHED
        self.outcome: str | None = None

        self.my_board = OwnBoard(ship_sizes)
        self.enemy_board = OpponentBoard()
        # Coordinate of our bombCell still waiting for its bombResponse
        self._pending_shot: tuple[int, int] | None = None

        self._subs: List[Callable[[Event], None]] = []

        self.my_board.randomize(self.rng)
        self._set_status(Status.GAME_START)

    # -------------------- event bus --------------------
    def subscribe(self, cb: Callable[[Event], None]) -> None:
        """Allow external components (renderer/logger) to receive session events."""
        self._subs.append(cb)

    def _emit(self, ev: Event) -> None:
        for cb in tuple(self._subs):
            try:
                cb(ev)
            except Exception:
                # A broken subscriber must not derail the turn protocol
                logger.exception("Subscriber failed on %s", ev)

    # -------------------- helpers --------------------
    @property
    def elapsed(self) -> float:
        """Seconds since the session started, frozen once the game is over."""
        if self.duration is not None:
            return self.duration
        return self._clock() - self.start_time

    @property
    def finished(self) -> bool:
        return self.state is GameState.FINISHED

    def _set_status(self, status: Status) -> None:
        self.status = status
        self._emit(Event(Category.STATUS, "status", {"status": status, "text": status.text}))

    def _transition(self, new: GameState) -> None:
        old, self.state = self.state, new
        logger.debug("state %s -> %s", old.name, new.name)
        self._emit(Event(Category.STATE, "transition", {"from": old, "to": new}))

    def _send(self, msg: Message) -> None:
        obj = encode(msg)
        logger.debug("send %s", obj)
        self._send_obj(obj)

    def _board_changed(self, which: str) -> None:
        self._emit(Event(Category.BOARD, which, {}))

    def _finish(self, outcome: str) -> None:
        self.my_board.player_turn = False
        self.enemy_board.player_turn = False
        self.outcome = outcome
        self.duration = self._clock() - self.start_time
        self._transition(GameState.FINISHED)
        logger.info("Game over (%s) after %.1f s", outcome, self.duration)

    # -------------------- placement phase --------------------
    def randomize_fleet(self) -> bool:
        """Re-draw the whole fleet; raises PlacementLockedError once ready."""
        self.my_board.randomize(self.rng)
        self._board_changed("own")
        return True

    def move_ship(self, index: int, row: int, column: int) -> bool:
        """Move a ship while placing; returns whether the fleet is currently valid."""
        ok = self.my_board.move_ship(index, row, column)
        self._board_changed("own")
        return ok

    def flip_ship(self, index: int) -> bool:
        ok = self.my_board.flip_ship(index)
        self._board_changed("own")
        return ok

    # -------------------- local input --------------------
    def chat(self, text: str) -> None:
        if self.finished:
            return
        self._send(Chat(text))
        self._emit(Event(Category.CHAT, "local", {"text": text}))

    def fire(self, row: int, column: int) -> None:
        """The player clicked (*row*, *column*) on the enemy board."""
        if self.finished:
            return
        if not self.enemy_board.player_turn:
            self.handle_event(Click())
        # handling the click may have changed whose turn it is
        if self.enemy_board.player_turn:
            self.handle_event(BombCell(row, column))

    def handle_event(self, event: BoardEvent) -> None:
        """Interpret one board event synchronously."""
        if isinstance(event, Click):
            self._on_click()
        elif isinstance(event, BombCell):
            self._bomb(event.row, event.column)
        elif isinstance(event, (PlayerMissed, Hit)):
            self._send(event.response)
            self._board_changed("own")
        elif isinstance(event, ShipSunk):
            self._send(event.response)
            self._set_status(Status.LOST_SHIP)
            self._board_changed("own")
        elif isinstance(event, AllSunk):
            self._set_status(Status.LOST_GAME)
            self._finish("lost")
            self._send(event.response)
            self._board_changed("own")
        else:  # pragma: no cover - exhaustive over BoardEvent
            logger.debug("Ignoring board event %r", event)

    def _on_click(self) -> None:
        state = self.state
        if state in (GameState.BEGIN, GameState.ENEMY_READY):
            self._ready_to_start()
        elif state is GameState.I_AM_READY:
            self._set_status(Status.WAIT_FOR_START)
        elif state is GameState.ENEMY_TURN:
            self._set_status(Status.WAIT)

    def _ready_to_start(self) -> None:
        if not self.my_board.is_valid():
            self._set_status(Status.INVALID_POSITIONS)
            return
        self.my_board.positioning_enabled = False
        if self.state is GameState.BEGIN:
            self._send(ReadyToPlay(nonce=self.nonce))
            self._transition(GameState.I_AM_READY)
            self._set_status(Status.WAIT_FOR_START)
        elif self.state is GameState.ENEMY_READY:
            self._send(ReadyToPlay(nonce=self.nonce, reply=True))
            self.pass_token()
            self._set_status(Status.WAIT)

    def _bomb(self, row: int, column: int) -> None:
        if self.state is not GameState.MY_TURN:
            return
        if self._pending_shot is not None:
            logger.debug(
                "Shot at %s still unanswered, ignoring fire at %s",
                format_coord(*self._pending_shot),
                format_coord(row, column),
            )
            return
        if self.enemy_board.cell(row, column).has_hit:
            return
        self._pending_shot = (row, column)
        self._send(BombCellMsg(row, column))

    # -------------------- token --------------------
    def take_token(self) -> None:
        self.my_board.player_turn = False
        self.enemy_board.player_turn = True
        self._transition(GameState.MY_TURN)
        self._set_status(Status.YOUR_TURN)

    def pass_token(self) -> None:
        self.my_board.player_turn = True
        self.enemy_board.player_turn = False
        self._transition(GameState.ENEMY_TURN)
        self._send(PassToken())

    # -------------------- peer messages --------------------
    def handle_message(self, obj: Any) -> None:
        """Handle one inbound message; unknown or malformed ones are dropped."""
        msg = decode(obj)
        if msg is None:
            return
        if self.finished:
            logger.debug("Game finished, ignoring %r", msg)
            return
        logger.debug("recv %r in %s", msg, self.state.name)

        if isinstance(msg, Chat):
            self._emit(Event(Category.CHAT, "peer", {"text": msg.text}))
        elif isinstance(msg, ReadyToPlay):
            self._on_ready(msg)
        elif isinstance(msg, PassToken):
            if self.state in _TOKEN_STATES:
                self.take_token()
            else:
                logger.debug("passToken before we are ready, ignoring")
        elif isinstance(msg, BombCellMsg):
            if self.state is GameState.ENEMY_TURN:
                event = self.my_board.receive_shot(msg.row, msg.column)
                if event is not None:
                    self.handle_event(event)
        elif isinstance(msg, BombResponse):
            self._on_bomb_response(msg)

    def _on_ready(self, msg: ReadyToPlay) -> None:
        if self.state is GameState.BEGIN:
            self._transition(GameState.ENEMY_READY)
        elif self.state is GameState.I_AM_READY:
            self._set_status(Status.GAME_ON)
            if msg.reply or msg.nonce is None:
                return
            # Both sides readied before seeing each other's readyToPlay:
            # the larger nonce hands the first turn to the other side.
            if msg.nonce == self.nonce:
                logger.warning("readyToPlay nonce collision (%d)", self.nonce)
                self.abandon("nonce collision", status=Status.HANDSHAKE_FAILED)
            elif self.nonce > msg.nonce:
                self.pass_token()

    def _on_bomb_response(self, msg: BombResponse) -> None:
        if self.state is not GameState.MY_TURN or self._pending_shot is None:
            logger.debug("Unexpected bombResponse, ignoring")
            return
        if self._pending_shot != (msg.row, msg.column):
            logger.warning(
                "bombResponse for %s but we fired at %s",
                format_coord(msg.row, msg.column),
                format_coord(*self._pending_shot),
            )
            return
        self._pending_shot = None
        self.enemy_board.apply_result(msg)
        self._board_changed("enemy")

        if msg.hit:
            self._set_status(Status.SHIP_SUNK if msg.ship is not None else Status.HIT)
        else:
            self._set_status(Status.MISS)

        if msg.all_sunk:
            self._finish("won")
            self._set_status(Status.ALL_SUNK)
        else:
            self.pass_token()

    # -------------------- transport failure --------------------
    def abandon(self, reason: str, *, status: Status = Status.CONNECTION_LOST) -> None:
        """End the session because the peer link is gone; there is no resume."""
        if self.finished:
            return
        logger.warning("Abandoning game: %s", reason)
        self._finish("abandoned")
        self._set_status(status)
        self._emit(Event(Category.SYSTEM, "abandoned", {"reason": reason}))
