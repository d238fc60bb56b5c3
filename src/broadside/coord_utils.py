"""Board coordinates as the player types them: a row letter and a column number.

Row letters run from ``A`` downwards and columns from ``1`` rightwards, so
``A1`` is the top-left cell and ``J10`` the bottom-right one on a 10x10
board. Internally everything is zero-based ``(row, column)``.
"""

import re
from typing import Tuple

from .config import BOARD_SIZE

ROW_LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"[:BOARD_SIZE]

COORD_RE = re.compile(rf"^([{ROW_LETTERS[0]}-{ROW_LETTERS[-1]}])([1-9][0-9]*)$")


def parse_coord(raw: str) -> Tuple[int, int]:
    """Return zero-based ``(row, column)`` for text like ``b7`` or ``J10``.

    Raises ValueError when the text is not a coordinate on the board.
    """
    match = COORD_RE.match(raw.strip().upper())
    if match is None or int(match.group(2)) > BOARD_SIZE:
        raise ValueError(f"Invalid coordinate: {raw.strip()}")
    return ROW_LETTERS.index(match.group(1)), int(match.group(2)) - 1


def format_coord(row: int, column: int) -> str:
    return f"{ROW_LETTERS[row]}{column + 1}"
