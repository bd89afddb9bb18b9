"""
Tests for the heuristic move evaluator.
"""

import math

import pytest

from blockmerge.core.board import board_from_columns, create_empty_board
from blockmerge.core.config_loader import load_config
from blockmerge.core.move_evaluator import TERM_NAMES, MoveEvaluator, column_structure


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def evaluator(config):
    return MoveEvaluator(config)


def full_column(rows, bottom=4, other=8):
    return [bottom if i % 2 == 0 else other for i in range(rows)]


class TestTerms:
    """Test individual scoring terms."""

    def test_blocked_column_has_no_terms(self, config, evaluator):
        board = board_from_columns([full_column(config.rows)], rows=config.rows)
        assert evaluator.score_terms(board, 0, 2) is None
        assert evaluator.score_column(board, 0, 2) == -math.inf

    def test_term_names(self, config, evaluator):
        board = create_empty_board(config.rows, config.cols)
        assert tuple(evaluator.score_terms(board, 0, 2)) == TERM_NAMES

    def test_direct_merge(self, config, evaluator):
        """Landing on an equal block earns the merge and keep-low bonuses."""
        w = config.evaluator
        board = board_from_columns([[4]], rows=config.rows)

        terms = evaluator.score_terms(board, 0, 4)

        assert terms["direct_merge"] == w.direct_merge_bonus + w.keep_low_bonus
        assert terms["stacking"] == w.stack_ok_bonus

    def test_direct_merge_overflow_loses_keep_low(self, config, evaluator):
        w = config.evaluator
        board = board_from_columns([[4, 4]], rows=config.rows)
        terms = evaluator.score_terms(board, 0, 4)
        assert terms["direct_merge"] == w.direct_merge_bonus

    def test_top_merge_bonus(self, config, evaluator):
        column = full_column(config.rows)
        board = board_from_columns([column], rows=config.rows)

        terms = evaluator.score_terms(board, 0, column[-1])

        assert terms["direct_merge"] == config.evaluator.top_merge_bonus

    def test_big_on_small_penalised(self, config, evaluator):
        board = board_from_columns([[2]], rows=config.rows)
        terms = evaluator.score_terms(board, 0, 8)
        assert terms["stacking"] == config.evaluator.stack_bad_penalty

    def test_danger_rows(self, config, evaluator):
        """Landing in the top rows is penalised."""
        w = config.evaluator
        board = board_from_columns([[2, 4, 2, 4, 2, 4, 2], [], [], [], []], rows=config.rows)
        terms = evaluator.score_terms(board, 0, 16)
        assert terms["position"] == w.danger_penalty - abs(0 - config.cols // 2)

    def test_side_merge_overflowing_small_block(self, config, evaluator):
        """A side merge whose result outgrows the block underneath."""
        w = config.evaluator
        board = board_from_columns([[2], [8, 4], [], [], []], rows=config.rows)
        terms = evaluator.score_terms(board, 0, 4)
        assert terms["horizontal"] == w.disruption_overflow_penalty + w.horizontal_overflow_penalty

    def test_side_merge_over_smaller_neighbour_base(self, config, evaluator):
        """The partner column has a smaller block under the merge cell."""
        w = config.evaluator
        board = board_from_columns([[16], [2, 4], [], [], []], rows=config.rows)
        terms = evaluator.score_terms(board, 0, 4)
        assert terms["horizontal"] == w.disruption_structure_penalty + w.horizontal_keep_low_bonus

    def test_side_merge_keeping_order(self, config, evaluator):
        w = config.evaluator
        board = board_from_columns([[16], [32, 4], [], [], []], rows=config.rows)
        terms = evaluator.score_terms(board, 0, 4)
        assert terms["horizontal"] == w.horizontal_keep_low_bonus

    def test_no_side_neighbour(self, config, evaluator):
        board = board_from_columns([[16], [32, 8], [], [], []], rows=config.rows)
        assert evaluator.score_terms(board, 0, 4)["horizontal"] == 0.0

    def test_position_prefers_center(self, config, evaluator):
        board = create_empty_board(config.rows, config.cols)
        center = evaluator.score_terms(board, config.cols // 2, 2)["position"]
        edge = evaluator.score_terms(board, 0, 2)["position"]
        assert center > edge

    def test_l_shape_bonus(self, config, evaluator):
        """Two equal neighbours around the landing cell."""
        board = board_from_columns([[2], [4, 2]], rows=config.rows)
        terms = evaluator.score_terms(board, 0, 2)
        assert terms["l_shape"] == config.evaluator.l_shape_bonus

    def test_lookahead_skipped_without_next(self, config, evaluator):
        board = create_empty_board(config.rows, config.cols)
        assert evaluator.score_terms(board, 0, 2)["lookahead"] == 0.0

    def test_lookahead_sees_follow_up_merge(self, config, evaluator):
        """Placing a 2 sets up a merge for a following 2."""
        w = config.evaluator
        board = create_empty_board(config.rows, config.cols)
        terms = evaluator.score_terms(board, 0, 2, next_value=2)
        expected = (w.lookahead_merge_bonus + w.lookahead_stack_bonus) * w.lookahead_factor
        assert terms["lookahead"] == pytest.approx(expected)

    def test_column_structure(self):
        assert column_structure(board_from_columns([[8, 4, 2]], rows=4), 0) == 30
        assert column_structure(board_from_columns([[2, 8]], rows=4), 0) == -10
        assert column_structure(board_from_columns([[]], rows=4), 0) == 0


class TestBestColumn:
    """Test column selection."""

    def test_empty_board_prefers_center(self, config, evaluator):
        board = create_empty_board(config.rows, config.cols)
        assert evaluator.best_column(board, 2, 4) == config.cols // 2

    def test_prefers_direct_merge(self, config, evaluator):
        board = board_from_columns([[], [], [8], [], [16]], rows=config.rows)
        assert evaluator.best_column(board, 16, 2) == 4

    def test_tie_keeps_lowest_column(self, config, evaluator):
        """Symmetric options resolve to the leftmost one."""
        blocked = full_column(config.rows)
        board = board_from_columns([[], blocked, blocked, blocked, []], rows=config.rows)

        scores = evaluator.evaluate(board, 2, 2)

        assert scores[0] == scores[4]
        assert scores[1] == scores[2] == scores[3] == -math.inf
        assert evaluator.best_column(board, 2, 2) == 0

    def test_all_blocked(self, config, evaluator):
        column = full_column(config.rows)
        board = board_from_columns([column] * config.cols, rows=config.rows)
        assert evaluator.best_column(board, 2, 2) is None

    def test_board_not_modified(self, config, evaluator):
        board = board_from_columns([[4], [2]], rows=config.rows)
        before = [row[:] for row in board]
        evaluator.best_column(board, 2, 4)
        assert board == before
