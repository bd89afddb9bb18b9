"""
Tests for landing positions and termination.
"""

import pytest

from blockmerge.core.board import board_from_columns, create_empty_board
from blockmerge.core.config_loader import load_config
from blockmerge.core.rules import LandingKind, LandingRules, TerminationRules


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def landing(config):
    return LandingRules(config)


@pytest.fixture
def termination(config):
    return TerminationRules(config)


def alternating_column(rows, bottom=4, other=2):
    return [bottom if i % 2 == 0 else other for i in range(rows)]


class TestLandingRules:
    """Test where blocks come to rest."""

    def test_empty_column_lands_at_bottom(self, config, landing):
        board = create_empty_board(config.rows, config.cols)
        result = landing.landing_row(board, 2, 2)
        assert result.kind is LandingKind.ROW
        assert result.row == config.rows - 1

    def test_lands_above_top_block(self, config, landing):
        board = board_from_columns([[8, 4, 2]], rows=config.rows)
        result = landing.landing_row(board, 0, 16)
        assert result.row == config.rows - 4

    def test_full_column_matching_top_merges(self, config, landing):
        """Row 0 occupied and equal to the incoming value."""
        column = alternating_column(config.rows)
        board = board_from_columns([column], rows=config.rows)
        top = column[-1]

        result = landing.landing_row(board, 0, top)

        assert result.is_top_merge
        assert result.effective_row == 0

    def test_full_column_different_top_is_blocked(self, config, landing):
        column = alternating_column(config.rows)
        board = board_from_columns([column], rows=config.rows)

        result = landing.landing_row(board, 0, column[-1] * 8)

        assert result.is_blocked
        assert result.row == -1

    def test_invalid_column_raises(self, config, landing):
        board = create_empty_board(config.rows, config.cols)
        with pytest.raises(ValueError):
            landing.landing_row(board, config.cols, 2)
        with pytest.raises(ValueError):
            landing.landing_row(board, -1, 2)

    def test_legal_columns_skip_blocked(self, config, landing):
        column = alternating_column(config.rows, bottom=8, other=16)
        board = board_from_columns([column, [], column], rows=config.rows)
        legal = landing.legal_columns(board, 2)
        assert 0 not in legal
        assert 2 not in legal
        assert 1 in legal

    def test_landing_does_not_modify_board(self, config, landing):
        board = board_from_columns([[2]], rows=config.rows)
        before = [row[:] for row in board]
        landing.landing_row(board, 0, 2)
        assert board == before


class TestTermination:
    """Test terminal detection."""

    def test_full_board_without_pairs_is_over(self, termination):
        board = [[2 if (r + c) % 2 == 0 else 4 for c in range(5)] for r in range(8)]
        result = termination.check_termination(board)
        assert result.terminated
        assert result.reason == "board_locked"

    def test_full_board_with_pair_continues(self, termination):
        board = [[2 if (r + c) % 2 == 0 else 4 for c in range(5)] for r in range(8)]
        board[7][0] = board[7][1]
        assert not termination.check_termination(board).terminated

    def test_board_with_empty_cell_continues(self, termination):
        board = [[2 if (r + c) % 2 == 0 else 4 for c in range(5)] for r in range(8)]
        board[0][0] = None
        assert not termination.check_termination(board).terminated
        assert not TerminationRules.is_locked(board)
