"""
RNG - Block Generator and Preview Queue
=======================================

Draws the value of the next falling block from the current board, and keeps
the (current, next) preview pair.
"""

from __future__ import annotations

import random
from typing import List, Optional, Sequence, Tuple

from blockmerge.core.board import max_value
from blockmerge.core.config_loader import GameConfig, get_config


class BlockGenerator:
    """
    Board-aware block value generator.

    While the largest block on the board is small, values come from a fixed
    early-game table. Later, every power of two up to the (capped) board
    maximum is eligible, smaller values being repeated more often in the pool.

    The random source is anything with a ``random() -> float`` method
    returning values in [0, 1); ``random.Random`` is used by default.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        seed: Optional[int] = None,
        rng=None
    ):
        """
        Initialize generator.

        Args:
            config: Game configuration. Uses default if None.
            seed: Random seed for reproducibility. Random if None.
            rng: Injected random source. Takes precedence over ``seed``.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._rng = rng if rng is not None else random.Random(seed)

        gen = config.generation
        # Cumulative thresholds for the early-game table
        self._early_values = gen.early_values
        self._early_cumulative: List[float] = []
        total = 0.0
        for p in gen.early_probabilities:
            total += p
            self._early_cumulative.append(total)

    @property
    def config(self) -> GameConfig:
        """Game configuration."""
        return self._config

    @property
    def rng(self):
        """The random source in use."""
        return self._rng

    def reseed(self, seed: Optional[int] = None, rng=None) -> None:
        """
        Replace the random source.

        Args:
            seed: New seed for a fresh ``random.Random``.
            rng: Injected random source. Takes precedence over ``seed``.
        """
        self._rng = rng if rng is not None else random.Random(seed)

    def effective_max(self, board: Sequence[Sequence[Optional[int]]]) -> int:
        """Board maximum capped at the generation ceiling (2 for an empty board)."""
        return min(max_value(board), self._config.generation.ceiling)

    def weighted_pool(self, max_block: int) -> List[int]:
        """
        Build the mid-game pool for a given maximum.

        The i-th smallest power of two (0-indexed) appears
        ``max(1, 3 - i // 2)`` times: weights 3, 3, 2, 2, 1, 1, ...

        Args:
            max_block: Largest value to include.

        Returns:
            Pool to draw from uniformly.
        """
        pool: List[int] = []
        value = 2
        idx = 0
        while value <= max_block:
            weight = max(1, 3 - idx // 2)
            pool.extend([value] * weight)
            value *= 2
            idx += 1
        return pool

    def _early_choice(self) -> int:
        r = self._rng.random()
        for value, threshold in zip(self._early_values, self._early_cumulative):
            if r < threshold:
                return value
        return self._early_values[-1]

    def generate(self, board: Sequence[Sequence[Optional[int]]]) -> int:
        """
        Draw the next block value.

        Args:
            board: Current board (read only).

        Returns:
            A power of two >= 2.
        """
        max_block = self.effective_max(board)

        if max_block <= self._config.generation.early_game_max:
            return self._early_choice()

        pool = self.weighted_pool(max_block)
        assert pool, f"Empty generation pool for max value {max_block}"
        return pool[int(self._rng.random() * len(pool))]


class PreviewQueue:
    """
    The (current, next) pair of blocks waiting to drop.

    ``current`` is the block the player drops now; ``next`` is shown as a
    preview. Each accepted drop consumes ``current``, promotes ``next`` and
    draws a fresh ``next`` from the generator.
    """

    def __init__(
        self,
        generator: BlockGenerator,
        first_block: Optional[int] = None
    ):
        """
        Initialize queue.

        Args:
            generator: Source of new block values.
            first_block: Value of the first current block. Uses config if None.
        """
        self._generator = generator
        self._first_block = (
            first_block if first_block is not None
            else generator.config.generation.first_block
        )
        self._current: int = self._first_block
        self._next: int = self._first_block

    @property
    def current(self) -> int:
        """Value of the block that drops next."""
        return self._current

    @property
    def next(self) -> int:
        """Value of the block after the current one."""
        return self._next

    def peek(self) -> Tuple[int, int]:
        """Return ``(current, next)`` without consuming."""
        return self._current, self._next

    def advance(self, board: Sequence[Sequence[Optional[int]]]) -> int:
        """
        Consume the current block.

        Args:
            board: Board the new preview value is generated from (the board
                as it is before the consumed block lands).

        Returns:
            The consumed value.
        """
        consumed = self._current
        self._current = self._next
        self._next = self._generator.generate(board)
        return consumed

    def reset(self, board: Sequence[Sequence[Optional[int]]]) -> None:
        """Reseed the preview for a new session on ``board``."""
        self._current = self._first_block
        self._next = self._generator.generate(board)
