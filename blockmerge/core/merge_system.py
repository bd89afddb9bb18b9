"""
Merge System
============

Handles merge pattern detection, cascade ordering, gravity and score totals
for a single drop.

One drop is resolved as an iterative loop around an *active cell* (initially
the landing cell). Each iteration applies at most one pattern, tested in
strict priority order:

1. Triple line through the active cell (value x4)
2. L-shape containing the active cell (value x4)
3. Pairwise horizontal with the active cell (value x2)
4. Pairwise vertical with the active cell (value x2)
5. Board-wide vertical pair, bottom rows first (value x2)
6. Board-wide horizontal pair, bottom rows first (value x2)

After a pattern fires, gravity repacks the board and the active cell is
relocated. The loop ends on the first iteration where nothing matches.
Every pattern turns at least two blocks into one, so the loop terminates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from blockmerge.core.board import (
    Board,
    Cell,
    apply_gravity,
    board_shape,
    copy_board,
    find_value_in_column,
)
from blockmerge.core.config_loader import GameConfig, get_config
from blockmerge.core.rules import LandingResult


class MergeKind(Enum):
    """Pattern that produced a merge."""
    TOP_MERGE = "top_merge"
    TRIPLE = "triple"
    L_SHAPE = "l_shape"
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    RESIDUAL_VERTICAL = "residual_vertical"
    RESIDUAL_HORIZONTAL = "residual_horizontal"


# (d_row, d_col) offsets relative to the active cell, in priority order.
TRIPLE_PATTERNS: Tuple[Tuple[Cell, Cell, Cell], ...] = (
    ((0, -1), (0, 0), (0, 1)),   # horizontal, active in the middle
    ((-1, 0), (0, 0), (1, 0)),   # vertical, active in the middle
    ((0, 0), (0, 1), (0, 2)),    # horizontal, active on the left
    ((0, -2), (0, -1), (0, 0)),  # horizontal, active on the right
    ((0, 0), (1, 0), (2, 0)),    # vertical, active on top
    ((-2, 0), (-1, 0), (0, 0)),  # vertical, active at the bottom
)

L_PATTERNS: Tuple[Tuple[Cell, Cell, Cell], ...] = (
    # corner at the active cell
    ((0, 0), (0, 1), (1, 0)),
    ((0, 0), (0, -1), (1, 0)),
    ((0, 0), (0, 1), (-1, 0)),
    ((0, 0), (0, -1), (-1, 0)),
    # active cell at the end of the horizontal arm
    ((0, 0), (0, 1), (-1, 1)),
    ((0, 0), (0, 1), (1, 1)),
    ((0, 0), (0, -1), (-1, -1)),
    ((0, 0), (0, -1), (1, -1)),
    # active cell at the end of the vertical arm
    ((0, 0), (1, 0), (1, 1)),
    ((0, 0), (1, 0), (1, -1)),
    ((0, 0), (-1, 0), (-1, 1)),
    ((0, 0), (-1, 0), (-1, -1)),
)


@dataclass(frozen=True)
class MergeEvent:
    """
    One resolved pattern.

    ``sources`` are the consumed cells other than ``target``; ``target``
    receives ``new_value``. A top merge has no source cell on the board (the
    incoming block never lands).
    """
    kind: MergeKind
    sources: Tuple[Cell, ...]
    target: Cell
    value: int
    new_value: int

    @property
    def cells(self) -> Tuple[Cell, ...]:
        """Every cell cleared by the merge, target last."""
        return self.sources + (self.target,)

    def __repr__(self) -> str:
        return (f"MergeEvent({self.kind.value}: {self.value}x{len(self.cells)} "
                f"-> {self.new_value} at {self.target})")


@dataclass
class MergeStep:
    """A merge event with the boards a presentation layer animates between."""
    event: MergeEvent
    before_gravity: Board
    after_gravity: Board


@dataclass
class ResolveResult:
    """Outcome of resolving one drop."""
    board: Board
    score_gained: int
    steps: List[MergeStep] = field(default_factory=list)
    placed_board: Optional[Board] = None  # Board right after placement (drop() only)

    @property
    def events(self) -> List[MergeEvent]:
        return [step.event for step in self.steps]

    @property
    def snapshots(self) -> List[Board]:
        """Ordered board states: pre-gravity then post-gravity for each step."""
        boards: List[Board] = []
        for step in self.steps:
            boards.append(step.before_gravity)
            boards.append(step.after_gravity)
        return boards

    @property
    def merge_count(self) -> int:
        return len(self.steps)


def _match_pattern(
    board: Sequence[Sequence[Optional[int]]],
    row: int,
    col: int,
    pattern: Tuple[Cell, ...]
) -> Optional[Tuple[Cell, ...]]:
    """Cells of ``pattern`` anchored at (row, col) if all hold the active value."""
    rows, cols = board_shape(board)
    value = board[row][col]
    cells = []
    for d_row, d_col in pattern:
        r, c = row + d_row, col + d_col
        if r < 0 or r >= rows or c < 0 or c >= cols or board[r][c] != value:
            return None
        cells.append((r, c))
    return tuple(cells)


def _find_shape(
    board: Sequence[Sequence[Optional[int]]],
    row: int,
    col: int,
    patterns: Tuple[Tuple[Cell, ...], ...],
    kind: MergeKind
) -> Optional[MergeEvent]:
    value = board[row][col]
    if value is None:
        return None
    for pattern in patterns:
        cells = _match_pattern(board, row, col, pattern)
        if cells is not None:
            sources = tuple(cell for cell in cells if cell != (row, col))
            return MergeEvent(kind, sources, (row, col), value, value * 4)
    return None


def find_triple_merge(
    board: Sequence[Sequence[Optional[int]]],
    row: int,
    col: int
) -> Optional[MergeEvent]:
    """Straight run of three equal blocks through the active cell."""
    return _find_shape(board, row, col, TRIPLE_PATTERNS, MergeKind.TRIPLE)


def find_l_shape_merge(
    board: Sequence[Sequence[Optional[int]]],
    row: int,
    col: int
) -> Optional[MergeEvent]:
    """Right-angle group of three equal blocks containing the active cell."""
    return _find_shape(board, row, col, L_PATTERNS, MergeKind.L_SHAPE)


def find_horizontal_merge(
    board: Sequence[Sequence[Optional[int]]],
    row: int,
    col: int
) -> Optional[MergeEvent]:
    """Left (then right) neighbour equal to the active cell; merges into it."""
    _, cols = board_shape(board)
    value = board[row][col]
    if value is None:
        return None
    if col > 0 and board[row][col - 1] == value:
        return MergeEvent(MergeKind.HORIZONTAL, ((row, col - 1),), (row, col), value, value * 2)
    if col < cols - 1 and board[row][col + 1] == value:
        return MergeEvent(MergeKind.HORIZONTAL, ((row, col + 1),), (row, col), value, value * 2)
    return None


def find_vertical_merge(
    board: Sequence[Sequence[Optional[int]]],
    row: int,
    col: int
) -> Optional[MergeEvent]:
    """
    Vertical neighbour equal to the active cell.

    A match below wins: the active block falls into the cell below. A match
    above merges down into the active cell.
    """
    rows, _ = board_shape(board)
    value = board[row][col]
    if value is None:
        return None
    if row < rows - 1 and board[row + 1][col] == value:
        return MergeEvent(MergeKind.VERTICAL, ((row, col),), (row + 1, col), value, value * 2)
    if row > 0 and board[row - 1][col] == value:
        return MergeEvent(MergeKind.VERTICAL, ((row - 1, col),), (row, col), value, value * 2)
    return None


def find_any_vertical_merge(board: Sequence[Sequence[Optional[int]]]) -> Optional[MergeEvent]:
    """First vertical pair scanning columns left to right, rows bottom-up."""
    rows, cols = board_shape(board)
    for col in range(cols):
        for row in range(rows - 1, 0, -1):
            value = board[row][col]
            if value is not None and value == board[row - 1][col]:
                return MergeEvent(
                    MergeKind.RESIDUAL_VERTICAL, ((row - 1, col),), (row, col), value, value * 2
                )
    return None


def find_any_horizontal_merge(board: Sequence[Sequence[Optional[int]]]) -> Optional[MergeEvent]:
    """First horizontal pair scanning rows bottom-up, columns left to right."""
    rows, cols = board_shape(board)
    for row in range(rows - 1, -1, -1):
        for col in range(cols - 1):
            value = board[row][col]
            if value is not None and value == board[row][col + 1]:
                return MergeEvent(
                    MergeKind.RESIDUAL_HORIZONTAL, ((row, col + 1),), (row, col), value, value * 2
                )
    return None


class MergeEngine:
    """
    Resolves drops into final boards.

    The engine is pure: it never mutates the boards it is given, and returns
    the final board, the score gained and the ordered merge steps. Scoring and
    state ownership belong to the caller.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize merge engine.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._config = config

    def find_next_merge(
        self,
        board: Sequence[Sequence[Optional[int]]],
        active: Optional[Cell]
    ) -> Optional[MergeEvent]:
        """
        Highest-priority pattern for this iteration, or None.

        Args:
            board: Current (packed) board.
            active: Active cell, or None if it has been lost.
        """
        rows, cols = board_shape(board)
        if active is not None:
            row, col = active
            if 0 <= row < rows and 0 <= col < cols and board[row][col] is not None:
                for finder in (
                    find_triple_merge,
                    find_l_shape_merge,
                    find_horizontal_merge,
                    find_vertical_merge,
                ):
                    event = finder(board, row, col)
                    if event is not None:
                        return event

        # Residual scans only detect pairs
        event = find_any_vertical_merge(board)
        if event is not None:
            return event
        return find_any_horizontal_merge(board)

    @staticmethod
    def _relocate_active(
        board: Board,
        event: MergeEvent,
        active: Cell,
        active_col: int
    ) -> Optional[Cell]:
        """
        Active cell after gravity has been applied for ``event``.

        Residual merges continue from their target. When the active block fell
        into an equal block below it, the merged block stays at that target.
        Every other pattern continues from the bottom-most copy of the new
        value in the active column.
        """
        kind = event.kind
        if kind in (MergeKind.RESIDUAL_VERTICAL, MergeKind.RESIDUAL_HORIZONTAL):
            return event.target
        if kind is MergeKind.VERTICAL and event.sources[0] == active:
            return event.target
        row = find_value_in_column(board, active_col, event.new_value)
        if row is None:
            return None
        return (row, active_col)

    def resolve(
        self,
        board: Sequence[Sequence[Optional[int]]],
        drop_col: int,
        drop_row: int
    ) -> ResolveResult:
        """
        Run the cascade starting from the placed block.

        Args:
            board: Board with the dropped block already written at
                ``(drop_row, drop_col)``. Not modified.
            drop_col: Column of the placed block.
            drop_row: Row of the placed block.

        Returns:
            ResolveResult with the final packed board, the sum of all merge
            results and one MergeStep per merge.
        """
        current = copy_board(board)
        active: Optional[Cell] = (drop_row, drop_col)
        total = 0
        steps: List[MergeStep] = []

        while True:
            event = self.find_next_merge(current, active)
            if event is None:
                break

            for r, c in event.cells:
                current[r][c] = None
            target_row, target_col = event.target
            current[target_row][target_col] = event.new_value
            before = copy_board(current)

            current = apply_gravity(current)
            total += event.new_value
            steps.append(MergeStep(event, before, copy_board(current)))

            if event.kind in (MergeKind.RESIDUAL_VERTICAL, MergeKind.RESIDUAL_HORIZONTAL):
                active = self._relocate_active(current, event, event.target, event.target[1])
            else:
                active = self._relocate_active(current, event, active, active[1])

        return ResolveResult(board=current, score_gained=total, steps=steps)

    def place(
        self,
        board: Sequence[Sequence[Optional[int]]],
        col: int,
        value: int,
        landing: LandingResult
    ) -> Tuple[Board, Optional[MergeEvent]]:
        """
        Write the incoming block onto a copy of ``board``.

        A top merge doubles the top block of the full column instead of adding
        a cell, and is reported as a MergeEvent.

        Raises:
            ValueError: If ``landing`` is blocked.
        """
        if landing.is_blocked:
            raise ValueError(f"Column {col} is blocked for value {value}")

        placed = copy_board(board)
        if landing.is_top_merge:
            old = placed[0][col]
            placed[0][col] = old * 2
            return placed, MergeEvent(MergeKind.TOP_MERGE, (), (0, col), old, old * 2)

        placed[landing.row][col] = value
        return placed, None

    def drop(
        self,
        board: Sequence[Sequence[Optional[int]]],
        col: int,
        value: int,
        landing: LandingResult
    ) -> ResolveResult:
        """
        Place a block and resolve the resulting cascade.

        The score of a top merge is counted before the cascade starts.

        Args:
            board: Board before the drop. Not modified.
            col: Drop column.
            value: Incoming block value.
            landing: Landing result for (board, col, value).

        Returns:
            ResolveResult covering the top merge (if any) and the cascade.
        """
        placed, top_event = self.place(board, col, value, landing)

        steps: List[MergeStep] = []
        gained = 0
        if top_event is not None:
            steps.append(MergeStep(top_event, copy_board(placed), copy_board(placed)))
            gained += top_event.new_value

        cascade = self.resolve(placed, col, landing.effective_row)
        return ResolveResult(
            board=cascade.board,
            score_gained=gained + cascade.score_gained,
            steps=steps + cascade.steps,
            placed_board=placed
        )
