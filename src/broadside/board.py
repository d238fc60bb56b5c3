"""Board model: cells, ships, placement validation and shot resolution.

Contains:
 - Cell and Ship, plain data objects with no display state
 - Board, a 10×10 grid plus an index-stable fleet, with validity checking
   and random placement
 - OwnBoard, the player's own fleet; the only place where shots are resolved
 - OpponentBoard, the local reconstruction of the enemy board built purely
   from revealed shot results

Each player runs one OwnBoard and one OpponentBoard. When the opponent fires,
OwnBoard.receive_shot() decides the outcome and returns an event carrying the
BombResponse that is sent back; the firing side replays that response on its
OpponentBoard via apply_result().
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from . import config as _cfg
from .events import AllSunk, Hit, PlayerMissed, ShipSunk, ShotEvent
from .protocol import BombResponse, ShipInfo

BOARD_SIZE = _cfg.BOARD_SIZE

logger = logging.getLogger(__name__)

Coord = Tuple[int, int]


class PlacementError(Exception):
    """Raised when a fleet cannot be laid out on the board at all."""


class PlacementLockedError(Exception):
    """Raised when a ship is edited after the placement phase has ended."""


def covered_cells(row: int, column: int, size: int, is_vertical: bool) -> List[Coord]:
    """Return the *size* coordinates covered by a ship anchored at (*row*, *column*)."""
    if is_vertical:
        return [(row + i, column) for i in range(size)]
    return [(row, column + i) for i in range(size)]


def in_range(row: int, column: int, size: int = BOARD_SIZE) -> bool:
    return 0 <= row < size and 0 <= column < size


@dataclass(slots=True)
class Cell:
    row: int
    column: int
    has_hit: bool = False
    ship_index: int = -1
    # Only meaningful on an OpponentBoard: the owner reported a hit here.
    revealed_hit: bool = False


@dataclass(slots=True)
class Ship:
    size: int
    row: int = 0
    column: int = 0
    is_vertical: bool = True
    hit_count: int = 0

    def update_position(self, row: int, column: int, is_vertical: bool) -> None:
        self.row = row
        self.column = column
        self.is_vertical = is_vertical

    def covered_cells(self) -> List[Coord]:
        return covered_cells(self.row, self.column, self.size, self.is_vertical)

    def flip(self, board_size: int = BOARD_SIZE) -> None:
        """Swap orientation and pull the origin back so the ship still fits.

        Other ships are not considered; re-run Board.is_valid() afterwards.
        """
        self.is_vertical = not self.is_vertical
        limit = board_size - self.size
        if self.is_vertical:
            if self.row > limit:
                self.row = max(limit, 0)
        elif self.column > limit:
            self.column = max(limit, 0)

    @property
    def is_sunk(self) -> bool:
        return self.hit_count == self.size

    def info(self) -> ShipInfo:
        return ShipInfo(row=self.row, column=self.column, is_vertical=self.is_vertical, size=self.size)

    @classmethod
    def from_info(cls, info: ShipInfo) -> "Ship":
        return cls(size=info.size, row=info.row, column=info.column, is_vertical=info.is_vertical)


class Board:
    """A *size*×*size* grid of cells plus an ordered fleet of ships.

    ``player_turn`` tells the input/rendering layer whether clicks on this
    board are currently accepted.
    """

    def __init__(self, size: int = BOARD_SIZE):
        self.size = size
        self.cells: List[List[Cell]] = [[Cell(r, c) for c in range(size)] for r in range(size)]
        self.ships: List[Ship] = []
        self.player_turn = False

    def cell(self, row: int, column: int) -> Cell:
        if not in_range(row, column, self.size):
            raise ValueError(f"({row},{column}) is off the board")
        return self.cells[row][column]

    def iter_cells(self) -> Iterable[Cell]:
        for row in self.cells:
            yield from row

    # ------------------------------------------------------------------
    # Placement validation
    # ------------------------------------------------------------------
    def _layout_ok(self) -> bool:
        # Flatten, sort, and look for equal neighbours: any duplicate is an overlap.
        all_cells: List[Coord] = []
        for ship in self.ships:
            all_cells.extend(ship.covered_cells())
        all_cells.sort()
        if any(a == b for a, b in zip(all_cells, all_cells[1:])):
            return False
        return all(in_range(r, c, self.size) for r, c in all_cells)

    def is_valid(self) -> bool:
        """Return True if no two ships overlap and every ship is on the board.

        A valid layout is committed: every cell is reset to un-fired and
        re-stamped with the index of the ship covering it.
        """
        if not self._layout_ok():
            return False
        self._update_cell_data()
        return True

    def _update_cell_data(self) -> None:
        for cell in self.iter_cells():
            cell.has_hit = False
            cell.ship_index = -1
            cell.revealed_hit = False
        for index, ship in enumerate(self.ships):
            ship.hit_count = 0
            for r, c in ship.covered_cells():
                self.cells[r][c].ship_index = index

    # ------------------------------------------------------------------
    # Random placement
    # ------------------------------------------------------------------
    def randomize(self, rng: Optional[random.Random] = None, max_attempts: Optional[int] = None) -> int:
        """Randomly lay out the whole fleet and return the number of rounds used.

        Every round re-draws all ships at once and keeps the first valid
        layout. After *max_attempts* rounds the ships are placed one by one
        instead, each into a free slot.
        """
        rng = rng or random.Random()
        attempts = max_attempts if max_attempts is not None else _cfg.RANDOMIZE_MAX_ATTEMPTS
        for attempt in range(1, attempts + 1):
            for ship in self.ships:
                ship.update_position(rng.randrange(self.size), rng.randrange(self.size), rng.random() < 0.5)
            if self.is_valid():
                logger.debug("randomize: valid layout after %d round(s)", attempt)
                return attempt
        logger.debug("randomize: %d rounds exhausted, placing ships one by one", attempts)
        self._place_incrementally(rng)
        return attempts

    def _fits(self, taken: set[Coord], row: int, column: int, size: int, is_vertical: bool) -> bool:
        return all(
            in_range(r, c, self.size) and (r, c) not in taken
            for r, c in covered_cells(row, column, size, is_vertical)
        )

    def _place_incrementally(self, rng: random.Random, tries_per_ship: int = 100) -> None:
        taken: set[Coord] = set()
        for index, ship in enumerate(self.ships):
            for _ in range(tries_per_ship):
                row, column, vertical = rng.randrange(self.size), rng.randrange(self.size), rng.random() < 0.5
                if self._fits(taken, row, column, ship.size, vertical):
                    break
            else:
                slot = self._first_free_slot(taken, ship.size)
                if slot is None:
                    raise PlacementError(f"No room left for ship {index} (size {ship.size})")
                row, column, vertical = slot
            ship.update_position(row, column, vertical)
            taken.update(ship.covered_cells())
        if not self.is_valid():  # pragma: no cover - _fits guarantees a valid layout
            raise PlacementError("Incremental placement produced an invalid layout")

    def _first_free_slot(self, taken: set[Coord], size: int) -> Optional[Tuple[int, int, bool]]:
        for row in range(self.size):
            for column in range(self.size):
                for vertical in (False, True):
                    if self._fits(taken, row, column, size, vertical):
                        return row, column, vertical
        return None


class OwnBoard(Board):
    """The local player's fleet: placement editing and authoritative shot resolution."""

    def __init__(self, ship_sizes: Optional[Sequence[int]] = None, size: int = BOARD_SIZE):
        super().__init__(size)
        sizes = list(ship_sizes) if ship_sizes is not None else list(_cfg.FLEET)
        # Start with one ship per row, horizontal, anchored in the first column.
        self.ships = [Ship(size=s, row=i, column=0, is_vertical=False) for i, s in enumerate(sizes)]
        self.positioning_enabled = True

    # -------------------- placement phase --------------------
    def _check_unlocked(self) -> None:
        if not self.positioning_enabled:
            raise PlacementLockedError("Ships cannot be moved once the game has started")

    def _editable_ship(self, index: int) -> Ship:
        self._check_unlocked()
        if not 0 <= index < len(self.ships):
            raise IndexError(f"No ship with index {index}")
        return self.ships[index]

    def move_ship(self, index: int, row: int, column: int) -> bool:
        """Reposition ship *index* and return whether the fleet is now valid."""
        ship = self._editable_ship(index)
        ship.update_position(row, column, ship.is_vertical)
        return self.is_valid()

    def flip_ship(self, index: int) -> bool:
        """Flip ship *index* and return whether the fleet is now valid."""
        self._editable_ship(index).flip(self.size)
        return self.is_valid()

    def randomize(self, rng: Optional[random.Random] = None, max_attempts: Optional[int] = None) -> int:
        self._check_unlocked()
        return super().randomize(rng, max_attempts)

    # -------------------- play phase --------------------
    def receive_shot(self, row: int, column: int) -> Optional[ShotEvent]:
        """Resolve an incoming shot at (*row*, *column*).

        Returns None when the cell was already fired upon, otherwise exactly
        one of PlayerMissed, Hit, ShipSunk or AllSunk.
        """
        cell = self.cell(row, column)
        if cell.has_hit:
            logger.debug("receive_shot: (%d,%d) already hit, ignoring", row, column)
            return None
        cell.has_hit = True

        if cell.ship_index < 0:
            return PlayerMissed(BombResponse(row, column, hit=False))

        ship = self.ships[cell.ship_index]
        ship.hit_count += 1
        if not ship.is_sunk:
            return Hit(BombResponse(row, column, hit=True))
        if self.all_ships_sunk():
            return AllSunk(BombResponse(row, column, hit=True, ship=ship.info(), all_sunk=True))
        return ShipSunk(BombResponse(row, column, hit=True, ship=ship.info()))

    def all_ships_sunk(self) -> bool:
        """Return True if every ship on this board has been sunk."""
        return all(ship.is_sunk for ship in self.ships)


class OpponentBoard(Board):
    """What is known about the enemy board, built only from their responses."""

    def apply_result(self, response: BombResponse) -> None:
        cell = self.cell(response.row, response.column)
        cell.has_hit = True
        cell.revealed_hit = response.hit
        if response.ship is not None:
            # Display only; sunk ships on the view are never resolved against.
            ship = Ship.from_info(response.ship)
            ship.hit_count = ship.size
            self.ships.append(ship)
