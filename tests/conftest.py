import logging
import random
import sys
from collections import deque
from pathlib import Path

import pytest

# Ensure local `src` directory is importable before project is installed.
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from broadside.board import Board  # noqa: E402
from broadside.session import GameSession  # noqa: E402

# Keep test output readable
logging.basicConfig(level=logging.WARNING)


def place(board: Board, layout) -> bool:
    """Put the board's ships at [(row, column, is_vertical), …] and commit."""
    for ship, (row, column, vertical) in zip(board.ships, layout):
        ship.update_position(row, column, vertical)
    return board.is_valid()


class FakeClock:
    """Manually advanced stand-in for time.monotonic."""

    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class SessionPair:
    """Two sessions joined by an in-memory, in-order message link."""

    def __init__(self, *, fleet=(2,), nonce_a: int = 2, nonce_b: int = 1) -> None:
        self.clock = FakeClock()
        self.to_b: deque = deque()
        self.to_a: deque = deque()
        self.a = GameSession(self.to_b.append, ship_sizes=fleet, rng=random.Random(1), nonce=nonce_a, clock=self.clock)
        self.b = GameSession(self.to_a.append, ship_sizes=fleet, rng=random.Random(2), nonce=nonce_b, clock=self.clock)

    def deliver_to_b(self) -> int:
        n = 0
        while self.to_b:
            self.b.handle_message(self.to_b.popleft())
            n += 1
        return n

    def deliver_to_a(self) -> int:
        n = 0
        while self.to_a:
            self.a.handle_message(self.to_a.popleft())
            n += 1
        return n

    def pump(self) -> None:
        while self.to_a or self.to_b:
            self.deliver_to_b()
            self.deliver_to_a()

    def start(self) -> None:
        """A readies first, B follows: A ends up holding the token."""
        self.a.fire(0, 0)
        self.pump()
        self.b.fire(0, 0)
        self.pump()


@pytest.fixture
def pair_factory():
    def _factory(**kwargs) -> SessionPair:
        return SessionPair(**kwargs)

    return _factory


@pytest.fixture
def pair() -> SessionPair:
    """Single-destroyer fleets: A's at A1/B1 and B's at A1/B1, both vertical."""
    p = SessionPair()
    assert place(p.a.my_board, [(0, 0, True)])
    assert place(p.b.my_board, [(0, 0, True)])
    return p
