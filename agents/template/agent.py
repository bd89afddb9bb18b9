"""
Agent Template
==============

Your agent must provide one of:
1. A `BlockMergeAgent` class with an `act(obs) -> action` method
2. A standalone `act(obs) -> action` function

Actions are column indices in [0, cols).

Run it with:
    python -m blockmerge.evaluation.run_eval --agent agents/template
"""

from __future__ import annotations

from typing import Dict
import numpy as np


class BlockMergeAgent:
    """
    Random agent over the legal columns.

    Replace the strategy in `act()` with your own logic.
    """

    def __init__(self, seed: int = 0):
        """Initialize your agent. Load models, set up state, etc."""
        self.rng = np.random.default_rng(seed)

    def act(self, obs: Dict[str, np.ndarray]) -> int:
        """
        Choose an action based on the observation.

        Args:
            obs: Dictionary containing game state. ``legal_mask`` flags the
                columns that accept the current block.

        Returns:
            action: Column index.
        """
        legal = np.flatnonzero(obs["legal_mask"])
        if legal.size == 0:
            return 0
        return int(self.rng.choice(legal))

    def reset(self) -> None:
        """Called when a new episode starts (optional)."""
        pass


def act(obs: Dict[str, np.ndarray]) -> int:
    """Standalone act function (alternative to class-based agent)."""
    legal = np.flatnonzero(obs["legal_mask"])
    return int(np.random.choice(legal)) if legal.size else 0
