"""
Tests for block generation and the preview queue.
"""

import pytest
from collections import Counter

from blockmerge.core.board import board_from_columns, create_empty_board
from blockmerge.core.config_loader import load_config
from blockmerge.core.rng import BlockGenerator, PreviewQueue


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def empty_board(config):
    return create_empty_board(config.rows, config.cols)


class TestBlockGenerator:
    """Test board-aware value generation."""

    def test_deterministic_with_seed(self, config, empty_board):
        """Same seed should produce same sequence."""
        g1 = BlockGenerator(config, seed=42)
        g2 = BlockGenerator(config, seed=42)

        assert [g1.generate(empty_board) for _ in range(50)] == \
               [g2.generate(empty_board) for _ in range(50)]

    def test_different_seeds_differ(self, config, empty_board):
        g1 = BlockGenerator(config, seed=42)
        g2 = BlockGenerator(config, seed=123)

        assert [g1.generate(empty_board) for _ in range(50)] != \
               [g2.generate(empty_board) for _ in range(50)]

    def test_early_game_uses_table(self, config, empty_board):
        """Small boards only draw from the early-game values."""
        gen = BlockGenerator(config, seed=7)
        counts = Counter(gen.generate(empty_board) for _ in range(2000))

        assert set(counts) == set(config.generation.early_values)
        # 2 and 4 are each drawn twice as often as 16
        assert counts[2] > counts[16]
        assert counts[4] > counts[16]

    def test_early_thresholds(self, config, empty_board, sequence_rng):
        """Cumulative probabilities map draws onto the table in order."""
        gen = BlockGenerator(config, rng=sequence_rng([0.0, 0.29, 0.31, 0.59, 0.61, 0.84, 0.86, 0.999]))
        values = [gen.generate(empty_board) for _ in range(8)]
        assert values == [2, 2, 4, 4, 8, 8, 16, 16]

    def test_weighted_pool(self, config):
        """Smaller values are repeated more often."""
        gen = BlockGenerator(config, seed=0)
        assert gen.weighted_pool(64) == [2, 2, 2, 4, 4, 4, 8, 8, 16, 16, 32, 64]
        assert gen.weighted_pool(16) == [2, 2, 2, 4, 4, 4, 8, 8, 16, 16]

    def test_effective_max_is_capped(self, config):
        gen = BlockGenerator(config, seed=0)
        board = board_from_columns([[256]], rows=config.rows)
        assert gen.effective_max(board) == config.generation.ceiling

    def test_mid_game_bounds(self, config):
        """Mid-game values are powers of two no larger than the ceiling."""
        gen = BlockGenerator(config, seed=3)
        board = board_from_columns([[1024, 512]], rows=config.rows)
        for _ in range(500):
            value = gen.generate(board)
            assert 2 <= value <= config.generation.ceiling
            assert value & (value - 1) == 0

    def test_mid_game_never_exceeds_board_max(self, config):
        gen = BlockGenerator(config, seed=5)
        board = board_from_columns([[32]], rows=config.rows)
        assert max(gen.generate(board) for _ in range(500)) == 32

    def test_reseed_restarts_sequence(self, config, empty_board):
        gen = BlockGenerator(config, seed=9)
        first = [gen.generate(empty_board) for _ in range(20)]
        gen.reseed(9)
        assert [gen.generate(empty_board) for _ in range(20)] == first


class TestPreviewQueue:
    """Test the (current, next) pair."""

    def test_first_block_from_config(self, config, empty_board):
        queue = PreviewQueue(BlockGenerator(config, seed=1))
        queue.reset(empty_board)
        assert queue.current == config.generation.first_block

    def test_advance_promotes_next(self, config, empty_board):
        queue = PreviewQueue(BlockGenerator(config, seed=1))
        queue.reset(empty_board)
        current, nxt = queue.peek()

        consumed = queue.advance(empty_board)

        assert consumed == current
        assert queue.current == nxt

    def test_next_drawn_from_given_board(self, config, sequence_rng):
        """The new preview depends on the board passed to advance."""
        # 0.99 is 16 in the early table but the last pool slot (32) mid-game
        empty = create_empty_board(config.rows, config.cols)
        with_32 = board_from_columns([[32]], rows=config.rows)

        q1 = PreviewQueue(BlockGenerator(config, rng=sequence_rng([0.99])))
        q1.reset(empty)
        q1.advance(empty)

        q2 = PreviewQueue(BlockGenerator(config, rng=sequence_rng([0.99])))
        q2.reset(empty)
        q2.advance(with_32)

        assert q1.next == 16
        assert q2.next == 32
