"""
Game Rules
==========

Handles landing positions and termination conditions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from blockmerge.core.board import board_shape, has_adjacent_pair, is_full
from blockmerge.core.config_loader import GameConfig, get_config


class LandingKind(Enum):
    """Where a dropped block ends up."""
    ROW = "row"              # Lands on an empty cell
    TOP_MERGE = "top_merge"  # Column full, top block matches: merge in place
    BLOCKED = "blocked"      # Column full, top block differs: drop refused


@dataclass(frozen=True)
class LandingResult:
    """Result of a landing query."""
    kind: LandingKind
    row: int

    @staticmethod
    def at(row: int) -> "LandingResult":
        return LandingResult(LandingKind.ROW, row)

    @staticmethod
    def top_merge() -> "LandingResult":
        return LandingResult(LandingKind.TOP_MERGE, 0)

    @staticmethod
    def blocked() -> "LandingResult":
        return LandingResult(LandingKind.BLOCKED, -1)

    @property
    def is_blocked(self) -> bool:
        return self.kind is LandingKind.BLOCKED

    @property
    def is_top_merge(self) -> bool:
        return self.kind is LandingKind.TOP_MERGE

    @property
    def effective_row(self) -> int:
        """Row occupied after placement (0 for a top merge)."""
        return 0 if self.kind is LandingKind.TOP_MERGE else self.row


@dataclass
class TerminationResult:
    """Result of termination check."""
    terminated: bool
    reason: str

    @staticmethod
    def none() -> "TerminationResult":
        return TerminationResult(False, "")

    @staticmethod
    def game_over(reason: str) -> "TerminationResult":
        return TerminationResult(True, reason)


class LandingRules:
    """
    Computes where a block dropped into a column comes to rest.

    The column is scanned from the top for its first occupied cell.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize landing rules.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._config = config

    def landing_row(
        self,
        board: Sequence[Sequence[Optional[int]]],
        col: int,
        value: int
    ) -> LandingResult:
        """
        Find the landing position of ``value`` dropped into ``col``.

        Args:
            board: Current (gravity-packed) board.
            col: Target column.
            value: Value of the incoming block.

        Returns:
            LandingResult: a row, the top-merge sentinel, or blocked.

        Raises:
            ValueError: If ``col`` is off the board.
        """
        rows, cols = board_shape(board)
        if col < 0 or col >= cols:
            raise ValueError(f"Invalid column: {col}")

        for row in range(rows):
            if board[row][col] is not None:
                if row == 0:
                    if board[0][col] == value:
                        return LandingResult.top_merge()
                    return LandingResult.blocked()
                return LandingResult.at(row - 1)
        return LandingResult.at(rows - 1)

    def legal_columns(
        self,
        board: Sequence[Sequence[Optional[int]]],
        value: int
    ) -> List[int]:
        """Columns that accept ``value`` (not blocked)."""
        _, cols = board_shape(board)
        return [
            col for col in range(cols)
            if not self.landing_row(board, col, value).is_blocked
        ]


class TerminationRules:
    """
    Handles game termination.

    The game is over when the board has no empty cell and no two
    orthogonally adjacent blocks share a value.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize termination rules.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._config = config

    @staticmethod
    def is_locked(board: Sequence[Sequence[Optional[int]]]) -> bool:
        """True if the board is full and no adjacent pair can merge."""
        return is_full(board) and not has_adjacent_pair(board)

    def check_termination(
        self,
        board: Sequence[Sequence[Optional[int]]]
    ) -> TerminationResult:
        """
        Check the terminal condition on a resolved board.

        Args:
            board: Board after merge resolution.

        Returns:
            TerminationResult indicating game state.
        """
        if self.is_locked(board):
            return TerminationResult.game_over("board_locked")
        return TerminationResult.none()


class GameRules:
    """
    Combined interface for all game rules.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize game rules.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self.landing = LandingRules(config)
        self.termination = TerminationRules(config)
