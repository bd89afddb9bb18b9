"""
State Snapshot
==============

Immutable view of the player-visible game state, and its packing into
fixed-size numpy arrays for Gymnasium observations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from blockmerge.core.board import (
    board_shape,
    board_to_array,
    column_height,
    count_empty,
    freeze_board,
    max_value,
)
from blockmerge.core.config_loader import GameConfig, get_config
from blockmerge.core.rules import LandingRules


@dataclass(frozen=True)
class GameSnapshot:
    """
    Complete game state between drops.

    The board is a tuple of row tuples (None for empty) so a snapshot can be
    kept around safely while the session moves on.
    """
    board: Tuple[Tuple[Optional[int], ...], ...]
    current_value: int
    next_value: int
    score: int
    high_score: int
    drops_used: int
    merges: int
    state: str
    paused: bool
    ai_enabled: bool

    # Derived features
    max_value: int
    empty_cells: int
    column_heights: Tuple[int, ...]
    legal_columns: Tuple[int, ...]

    @property
    def rows(self) -> int:
        return len(self.board)

    @property
    def cols(self) -> int:
        return len(self.board[0]) if self.board else 0

    @property
    def is_over(self) -> bool:
        return self.state == "over"

    def to_obs_dict(self) -> Dict[str, np.ndarray]:
        """Convert to Gymnasium observation dictionary."""
        board = board_to_array(self.board)
        # log2 of each block, 0 for empty cells
        board_log2 = np.zeros(board.shape, dtype=np.float32)
        occupied = board > 0
        board_log2[occupied] = np.log2(board[occupied]).astype(np.float32)

        legal_mask = np.zeros(self.cols, dtype=np.int8)
        legal_mask[list(self.legal_columns)] = 1

        return {
            "board": board,
            "board_log2": board_log2,
            "current_value": np.array(self.current_value, dtype=np.int64),
            "next_value": np.array(self.next_value, dtype=np.int64),
            "score": np.array(self.score, dtype=np.int64),
            "drops_used": np.array(self.drops_used, dtype=np.int32),
            "empty_cells": np.array(self.empty_cells, dtype=np.int32),
            "max_value": np.array(self.max_value, dtype=np.int64),
            "column_heights": np.array(self.column_heights, dtype=np.int32),
            "legal_mask": legal_mask,
        }


class SnapshotBuilder:
    """Builds game state snapshots."""

    def __init__(self, config: Optional[GameConfig] = None):
        if config is None:
            config = get_config()

        self._config = config
        self._landing = LandingRules(config)

    def build(
        self,
        board: Sequence[Sequence[Optional[int]]],
        current_value: int,
        next_value: int,
        score: int,
        high_score: int,
        drops_used: int,
        merges: int,
        state: str,
        paused: bool,
        ai_enabled: bool
    ) -> GameSnapshot:
        """
        Build a snapshot from raw session state.

        Args:
            board: Current board (copied).
            current_value: Block about to drop.
            next_value: Preview block.
            score: Session score.
            high_score: Best score across sessions.
            drops_used: Accepted drops this session.
            merges: Merges performed this session.
            state: Session state name.
            paused: Pause flag.
            ai_enabled: AI mode flag.

        Returns:
            GameSnapshot.
        """
        _, cols = board_shape(board)
        return GameSnapshot(
            board=freeze_board(board),
            current_value=current_value,
            next_value=next_value,
            score=score,
            high_score=high_score,
            drops_used=drops_used,
            merges=merges,
            state=state,
            paused=paused,
            ai_enabled=ai_enabled,
            max_value=max_value(board, floor=0),
            empty_cells=count_empty(board),
            column_heights=tuple(column_height(board, c) for c in range(cols)),
            legal_columns=tuple(self._landing.legal_columns(board, current_value)),
        )
