"""
Move Evaluator
==============

Heuristic column picker used by the AI mode.

Each legal column gets a score that is the sum of independent terms computed
on the current board, plus a discounted one-ply lookahead for the next block.
The highest score wins; ties keep the lowest column index.
"""

from __future__ import annotations

import math
from typing import Dict, List, Optional, Sequence

from blockmerge.core.board import board_shape, copy_board, get_cell
from blockmerge.core.config_loader import GameConfig, get_config
from blockmerge.core.rules import LandingRules


TERM_NAMES = (
    "direct_merge",
    "stacking",
    "horizontal",
    "lookahead",
    "position",
    "l_shape",
    "structure",
)


def column_structure(
    board: Sequence[Sequence[Optional[int]]],
    col: int,
    ok_bonus: float = 10,
    bad_penalty: float = -20
) -> float:
    """
    Score how well a column keeps big values low.

    Walks the column bottom-up until the first empty cell: each block not
    larger than the one beneath it earns ``ok_bonus``, each larger block
    earns ``bad_penalty``.
    """
    rows, _ = board_shape(board)
    total = 0.0
    prev = math.inf
    for row in range(rows - 1, -1, -1):
        value = board[row][col]
        if value is None:
            break
        total += ok_bonus if value <= prev else bad_penalty
        prev = value
    return total


class MoveEvaluator:
    """
    Scores drop columns for a (current, next) block pair.

    Pure: boards are only read. All weights come from the ``evaluator``
    section of the game config.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize evaluator.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._weights = config.evaluator
        self._landing = LandingRules(config)

    def _horizontal_disruption(
        self,
        board: Sequence[Sequence[Optional[int]]],
        row: int,
        col: int,
        value: int
    ) -> float:
        """Penalty for a side merge that would break the small-on-big order."""
        w = self._weights
        left = get_cell(board, row, col - 1)
        right = get_cell(board, row, col + 1)
        if left != value and right != value:
            return 0.0

        below = get_cell(board, row + 1, col)
        if below is not None and value * 2 > below:
            return w.disruption_overflow_penalty

        merged_col = col - 1 if left == value else col + 1
        below_merged = get_cell(board, row + 1, merged_col)
        if below_merged is not None and below_merged < value:
            return w.disruption_structure_penalty
        return 0.0

    def _lookahead(
        self,
        board: Sequence[Sequence[Optional[int]]],
        value: int
    ) -> float:
        """Best direct-merge plus stacking sub-score for ``value`` over all columns."""
        w = self._weights
        rows, cols = board_shape(board)
        best = -math.inf
        for col in range(cols):
            landing = self._landing.landing_row(board, col, value)
            if landing.is_blocked:
                continue
            row = landing.effective_row
            sub = 0.0
            if not landing.is_top_merge and row < rows - 1 and board[row + 1][col] == value:
                sub += w.lookahead_merge_bonus
            below = get_cell(board, row + 1, col)
            if below is not None and value <= below:
                sub += w.lookahead_stack_bonus
            best = max(best, sub)
        return best

    def score_terms(
        self,
        board: Sequence[Sequence[Optional[int]]],
        col: int,
        current: int,
        next_value: Optional[int] = None
    ) -> Optional[Dict[str, float]]:
        """
        Break the score of one column into its named terms.

        Args:
            board: Current board (read only).
            col: Candidate column.
            current: Value about to drop.
            next_value: Preview value for the lookahead; skipped if falsy.

        Returns:
            Dict keyed by TERM_NAMES, or None if the column is blocked.
        """
        landing = self._landing.landing_row(board, col, current)
        if landing.is_blocked:
            return None

        w = self._weights
        rows, cols = board_shape(board)
        row = landing.effective_row
        terms = dict.fromkeys(TERM_NAMES, 0.0)

        # Direct merge with the block underneath, or with a full column's top
        if not landing.is_top_merge and row < rows - 1 and board[row + 1][col] == current:
            terms["direct_merge"] += w.direct_merge_bonus
            below2 = get_cell(board, row + 2, col)
            if below2 is None or current * 2 <= below2:
                terms["direct_merge"] += w.keep_low_bonus
        if landing.is_top_merge:
            terms["direct_merge"] += w.top_merge_bonus

        # Small on big
        below = get_cell(board, row + 1, col)
        if below is not None:
            terms["stacking"] += w.stack_ok_bonus if current <= below else w.stack_bad_penalty

        # Side merges
        left = get_cell(board, row, col - 1)
        right = get_cell(board, row, col + 1)
        if left == current or right == current:
            terms["horizontal"] += self._horizontal_disruption(board, row, col, current)
            merged = current * 2
            if below is not None:
                if merged <= below:
                    terms["horizontal"] += w.horizontal_keep_low_bonus
                else:
                    terms["horizontal"] += w.horizontal_overflow_penalty

        if next_value:
            sim = copy_board(board)
            if not landing.is_top_merge:
                sim[row][col] = current
            terms["lookahead"] = self._lookahead(sim, next_value) * w.lookahead_factor

        # Deep landings, central columns, stay away from the top
        terms["position"] += w.depth_per_row * row
        terms["position"] -= abs(col - cols // 2)
        if row < w.danger_rows:
            terms["position"] += w.danger_penalty

        neighbours = ((row - 1, col), (row + 1, col), (row, col - 1), (row, col + 1))
        matching = sum(1 for r, c in neighbours if get_cell(board, r, c) == current)
        if matching >= 2:
            terms["l_shape"] += w.l_shape_bonus

        terms["structure"] = column_structure(
            board, col, w.structure_ok_bonus, w.structure_bad_penalty
        ) * w.structure_factor

        return terms

    def score_column(
        self,
        board: Sequence[Sequence[Optional[int]]],
        col: int,
        current: int,
        next_value: Optional[int] = None
    ) -> float:
        """Total heuristic score of a column (-inf if blocked)."""
        terms = self.score_terms(board, col, current, next_value)
        if terms is None:
            return -math.inf
        return sum(terms.values())

    def evaluate(
        self,
        board: Sequence[Sequence[Optional[int]]],
        current: int,
        next_value: Optional[int] = None
    ) -> List[float]:
        """Scores of every column, -inf for blocked ones."""
        _, cols = board_shape(board)
        return [self.score_column(board, col, current, next_value) for col in range(cols)]

    def best_column(
        self,
        board: Sequence[Sequence[Optional[int]]],
        current: int,
        next_value: Optional[int] = None
    ) -> Optional[int]:
        """
        Pick the column to drop ``current`` into.

        Args:
            board: Current board (read only).
            current: Value about to drop.
            next_value: Preview value used for the lookahead.

        Returns:
            Best column, or None if every column is blocked.
        """
        best_col: Optional[int] = None
        best_score = -math.inf
        for col, score in enumerate(self.evaluate(board, current, next_value)):
            if score > best_score:
                best_score = score
                best_col = col

        if best_col is None:
            legal = self._landing.legal_columns(board, current)
            return legal[0] if legal else None
        return best_col
