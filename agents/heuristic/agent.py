"""
Heuristic Agent - Drops each block where the move evaluator scores best.

This agent rebuilds the board from the observation and asks the same
MoveEvaluator that drives the in-game AI mode for the best column.

This serves as:
1. A working example of how to read observations and return actions
2. A baseline benchmark to compare other agents against
"""

from typing import Any, Dict, List, Optional

import numpy as np

from blockmerge.core.config_loader import GameConfig, get_config
from blockmerge.core.move_evaluator import MoveEvaluator


def board_from_obs(observation: Dict[str, Any]) -> List[List[Optional[int]]]:
    """Convert the observation's int board (0 = empty) to a board of Optional ints."""
    board = np.asarray(observation["board"])
    return [[int(v) if v > 0 else None for v in row] for row in board]


class BlockMergeAgent:
    """
    Agent that plays the heuristic move evaluator.

    Falls back to the first legal column if the evaluator finds none.
    """

    def __init__(self, config: Optional[GameConfig] = None, debug: bool = False):
        """
        Initialize the agent.

        Args:
            config: Game configuration holding the evaluator weights.
            debug: If True, print decisions to stdout.
        """
        self.debug = debug
        self._evaluator = MoveEvaluator(config if config is not None else get_config())

    def reset(self, seed: Optional[int] = None) -> None:
        """Reset agent state for a new episode (stateless)."""

    def act(self, observation: Dict[str, Any], debug: bool = False) -> int:
        """
        Choose the column to drop the current block into.

        Args:
            observation: Dict of numpy arrays from the environment.
            debug: If True, print debug info for this step.

        Returns:
            Column index.
        """
        board = board_from_obs(observation)
        current = int(observation["current_value"])
        next_value = int(observation["next_value"])

        col = self._evaluator.best_column(board, current, next_value)
        if col is None:
            legal = np.flatnonzero(observation["legal_mask"])
            col = int(legal[0]) if legal.size else 0

        if debug or self.debug:
            scores = self._evaluator.evaluate(board, current, next_value)
            print(f"[Heuristic Agent] Block={current}, Next={next_value}, "
                  f"Scores={[round(s, 1) for s in scores]}, Column={col}")

        return int(col)


def create_agent(**kwargs) -> BlockMergeAgent:
    """Factory function to create an agent instance."""
    return BlockMergeAgent(**kwargs)
