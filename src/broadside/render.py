"""Text renderer for the CLI peer.

Reads the board model and produces printable lines; nothing in the model
depends on this module.

Own board:     1-9,0,a-j ship number   X hit   o miss   . water
Enemy board:   # sunk ship   X hit   o miss   . unknown
"""

from __future__ import annotations

from typing import Callable, List

from .board import Board, OpponentBoard, OwnBoard


_SHIP_GLYPHS = "1234567890abcdefghij"


def _own_cell(board: OwnBoard, row: int, column: int) -> str:
    cell = board.cells[row][column]
    if cell.has_hit:
        return "X" if cell.ship_index >= 0 else "o"
    if cell.ship_index >= 0:
        return _SHIP_GLYPHS[cell.ship_index % len(_SHIP_GLYPHS)]
    return "."


def _enemy_cell(board: OpponentBoard, sunk: set[tuple[int, int]], row: int, column: int) -> str:
    if (row, column) in sunk:
        return "#"
    cell = board.cells[row][column]
    if cell.has_hit:
        return "X" if cell.revealed_hit else "o"
    return "."


def grid_rows(board: Board) -> List[str]:
    """Board → ["c c c …", …] with one space-separated string per row."""
    if isinstance(board, OwnBoard):
        # The stamped ship_index is stale while ships are being dragged around,
        # so draw straight from the fleet during placement.
        if board.positioning_enabled:
            return _placement_rows(board)
        cell_fn: Callable[[int, int], str] = lambda r, c: _own_cell(board, r, c)
    elif isinstance(board, OpponentBoard):
        sunk = {rc for ship in board.ships for rc in ship.covered_cells()}
        cell_fn = lambda r, c: _enemy_cell(board, sunk, r, c)
    else:
        raise TypeError(f"Cannot render {type(board).__name__}")
    return [" ".join(cell_fn(r, c) for c in range(board.size)) for r in range(board.size)]


def _placement_rows(board: OwnBoard) -> List[str]:
    grid = [["." for _ in range(board.size)] for _ in range(board.size)]
    for index, ship in enumerate(board.ships):
        glyph = _SHIP_GLYPHS[index % len(_SHIP_GLYPHS)]
        for r, c in ship.covered_cells():
            if 0 <= r < board.size and 0 <= c < board.size:
                # overlapping ships show up as '!'
                grid[r][c] = glyph if grid[r][c] == "." else "!"
    return [" ".join(row) for row in grid]


def two_grids(
    left_rows: list[str],
    right_rows: list[str],
    *,
    header_left: str,
    header_right: str,
) -> List[str]:
    """Lay out two boards side-by-side with custom headers."""
    if not left_rows or not right_rows:
        return []

    columns = len(left_rows[0].split())
    numeric_header = "   " + " ".join(f"{i:>2}" for i in range(1, columns + 1))
    board_width = len(numeric_header)

    lines = [
        f"{f'[{header_left}]'.center(board_width)}   {f'[{header_right}]'.center(board_width)}",
        f"{numeric_header}   {numeric_header}",
    ]
    for idx in range(len(left_rows)):
        label = chr(ord("A") + idx)
        left = " ".join(f"{c:>2}" for c in left_rows[idx].split())
        right = " ".join(f"{c:>2}" for c in right_rows[idx].split())
        lines.append(f"{label:2} {left}   {label:2} {right}")
    return lines


def render_boards(enemy: OpponentBoard, own: OwnBoard) -> str:
    enemy_hdr = "Enemy Fleet" + (" - FIRE!" if enemy.player_turn else "")
    return "\n".join(two_grids(grid_rows(enemy), grid_rows(own), header_left=enemy_hdr, header_right="Your Fleet"))
