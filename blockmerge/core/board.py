"""
Board Helpers
=============

A board is a list of rows, each a list of optional block values, indexed
``board[row][col]``. Row 0 is the top; blocks fall toward higher row indices.
``None`` marks an empty cell.

Between player-visible states every column is gravity-packed: occupied cells
are contiguous at the bottom and empty cells form a prefix from the top.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import numpy as np


Board = List[List[Optional[int]]]
Cell = Tuple[int, int]  # (row, col)


def create_empty_board(rows: int, cols: int) -> Board:
    """Create a board with every cell empty."""
    return [[None] * cols for _ in range(rows)]


def copy_board(board: Sequence[Sequence[Optional[int]]]) -> Board:
    """Return a mutable deep copy of ``board``."""
    return [list(row) for row in board]


def freeze_board(board: Sequence[Sequence[Optional[int]]]) -> Tuple[Tuple[Optional[int], ...], ...]:
    """Return an immutable (hashable) copy of ``board``."""
    return tuple(tuple(row) for row in board)


def board_shape(board: Sequence[Sequence[Optional[int]]]) -> Tuple[int, int]:
    """Return ``(rows, cols)``."""
    return len(board), (len(board[0]) if board else 0)


def get_cell(board: Sequence[Sequence[Optional[int]]], row: int, col: int) -> Optional[int]:
    """Value at ``(row, col)``, or None when empty or off the board."""
    rows, cols = board_shape(board)
    if row < 0 or row >= rows or col < 0 or col >= cols:
        return None
    return board[row][col]


def max_value(board: Sequence[Sequence[Optional[int]]], floor: int = 2) -> int:
    """Largest block on the board, never less than ``floor``."""
    best = floor
    for row in board:
        for cell in row:
            if cell is not None and cell > best:
                best = cell
    return best


def count_empty(board: Sequence[Sequence[Optional[int]]]) -> int:
    """Number of empty cells."""
    return sum(1 for row in board for cell in row if cell is None)


def is_full(board: Sequence[Sequence[Optional[int]]]) -> bool:
    """True if no cell is empty."""
    return all(cell is not None for row in board for cell in row)


def has_adjacent_pair(board: Sequence[Sequence[Optional[int]]]) -> bool:
    """True if two orthogonally adjacent occupied cells hold the same value."""
    rows, cols = board_shape(board)
    for row in range(rows):
        for col in range(cols):
            value = board[row][col]
            if value is None:
                continue
            if col < cols - 1 and board[row][col + 1] == value:
                return True
            if row < rows - 1 and board[row + 1][col] == value:
                return True
    return False


def apply_gravity(board: Sequence[Sequence[Optional[int]]]) -> Board:
    """
    Compact every column toward the bottom.

    Occupied cells keep their top-to-bottom order; vacated cells become empty
    at the top of the column. The input board is not modified.

    Args:
        board: Board to compact.

    Returns:
        A new gravity-packed board.
    """
    rows, cols = board_shape(board)
    packed = create_empty_board(rows, cols)
    for col in range(cols):
        stack = [board[row][col] for row in range(rows) if board[row][col] is not None]
        offset = rows - len(stack)
        for i, value in enumerate(stack):
            packed[offset + i][col] = value
    return packed


def is_gravity_packed(board: Sequence[Sequence[Optional[int]]]) -> bool:
    """True if no empty cell sits below an occupied cell in any column."""
    rows, cols = board_shape(board)
    for col in range(cols):
        seen_block = False
        for row in range(rows):
            if board[row][col] is not None:
                seen_block = True
            elif seen_block:
                return False
    return True


def find_value_in_column(
    board: Sequence[Sequence[Optional[int]]],
    col: int,
    value: int
) -> Optional[int]:
    """
    Bottom-most row of ``col`` holding ``value``.

    Several cells may share a value; the search runs bottom-up and returns the
    first hit.

    Returns:
        Row index, or None if the column does not contain ``value``.
    """
    rows, _ = board_shape(board)
    for row in range(rows - 1, -1, -1):
        if board[row][col] == value:
            return row
    return None


def column_height(board: Sequence[Sequence[Optional[int]]], col: int) -> int:
    """Number of occupied cells in ``col``."""
    return sum(1 for row in board if row[col] is not None)


def board_to_array(board: Sequence[Sequence[Optional[int]]]) -> np.ndarray:
    """Encode the board as an int64 array with 0 for empty cells."""
    rows, cols = board_shape(board)
    arr = np.zeros((rows, cols), dtype=np.int64)
    for r in range(rows):
        for c in range(cols):
            value = board[r][c]
            if value is not None:
                arr[r, c] = value
    return arr


def board_from_columns(
    columns: Sequence[Sequence[int]],
    rows: int
) -> Board:
    """
    Build a packed board from bottom-up column stacks.

    ``columns[c][0]`` is the bottom block of column ``c``. Mostly useful in
    tests and tools.
    """
    board = create_empty_board(rows, len(columns))
    for col, stack in enumerate(columns):
        if len(stack) > rows:
            raise ValueError(f"Column {col} holds {len(stack)} blocks, board has {rows} rows")
        for i, value in enumerate(stack):
            board[rows - 1 - i][col] = value
    return board


def format_board(board: Sequence[Sequence[Optional[int]]]) -> str:
    """Render the board as fixed-width text, top row first."""
    _, cols = board_shape(board)
    lines = []
    for row in board:
        lines.append("".join(f"{cell:6d}" if cell is not None else "     ." for cell in row))
    lines.append("-" * (cols * 6))
    lines.append("".join(f"{f'C{c}':>6}" for c in range(cols)))
    return "\n".join(lines)
