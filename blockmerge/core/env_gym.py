"""
Gymnasium Environment Wrapper
=============================

Provides a standard Gymnasium interface to the block merge game.
Reward is the score gained by the step's drop.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple, Union
import numpy as np

import gymnasium as gym
from gymnasium import spaces

from blockmerge.core.board import format_board
from blockmerge.core.config_loader import GameConfig, load_config
from blockmerge.core.game import GameSession
from blockmerge.core.state_snapshot import GameSnapshot


class BlockMergeEnv(gym.Env):
    """
    Block merge game as a Gymnasium environment.

    Action Space:
        Discrete(cols). The column the current block is dropped into.

    Observation Space:
        Dict with the board (raw values and log2), the (current, next) block
        pair, score, counters and per-column features.

    Reward:
        Score gained by the drop (sum of all merge results). 0 for a rejected
        action.

    Info:
        Contains score, delta_score, drops_used, merges, terminated_reason and,
        for a rejected action, ``rejected`` with the rejection status.
    """

    metadata = {
        "render_modes": ["human", "ansi"],
        "render_fps": 4,
    }

    def __init__(
        self,
        config_path: Optional[str] = None,
        render_mode: Optional[str] = None,
        debug: bool = False,
        config: Optional[GameConfig] = None,
        rng=None,
    ):
        """
        Initialize environment.

        Args:
            config_path: Path to game_config.yaml. Uses default if None.
            render_mode: "human" prints the board, "ansi" returns it as text,
                None for headless.
            debug: If True, enables verbose debug output for agent development.
            config: Already loaded configuration. Takes precedence over
                ``config_path``.
            rng: Injected random source for block generation (object with
                ``random()``). Kept across resets that pass no seed.
        """
        super().__init__()

        if render_mode is not None and render_mode not in self.metadata["render_modes"]:
            raise ValueError(f"Unsupported render_mode: {render_mode}")

        self._config = config if config is not None else load_config(config_path)

        self.render_mode = render_mode
        self._debug = debug

        self._game = GameSession(config=self._config, rng=rng)
        self._invalid_streak = 0

        self.action_space = spaces.Discrete(self._config.cols)
        self.observation_space = self._build_observation_space()

        if self._debug:
            print(f"[DEBUG] BlockMergeEnv initialized")
            print(f"[DEBUG]   Board: {self._config.rows}x{self._config.cols}")
            print(f"[DEBUG]   Max drops: {self._config.caps.max_drops}")

    def _build_observation_space(self) -> spaces.Dict:
        """Build the observation space definition."""
        rows, cols = self._config.rows, self._config.cols
        int64_max = np.iinfo(np.int64).max

        return spaces.Dict({
            "board": spaces.Box(low=0, high=int64_max, shape=(rows, cols), dtype=np.int64),
            "board_log2": spaces.Box(low=0, high=63, shape=(rows, cols), dtype=np.float32),
            "current_value": spaces.Box(low=0, high=int64_max, shape=(), dtype=np.int64),
            "next_value": spaces.Box(low=0, high=int64_max, shape=(), dtype=np.int64),
            "score": spaces.Box(low=0, high=int64_max, shape=(), dtype=np.int64),
            "drops_used": spaces.Box(low=0, high=self._config.caps.max_drops, shape=(), dtype=np.int32),
            "empty_cells": spaces.Box(low=0, high=rows * cols, shape=(), dtype=np.int32),
            "max_value": spaces.Box(low=0, high=int64_max, shape=(), dtype=np.int64),
            "column_heights": spaces.Box(low=0, high=rows, shape=(cols,), dtype=np.int32),
            "legal_mask": spaces.MultiBinary(cols),
        })

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None
    ) -> Tuple[Dict[str, np.ndarray], Dict[str, Any]]:
        """
        Reset the environment.

        Args:
            seed: Random seed for reproducibility.
            options: Additional options (unused).

        Returns:
            (observation, info) tuple.
        """
        super().reset(seed=seed)

        snapshot = self._game.restart(seed=seed)
        self._invalid_streak = 0

        obs = self._snapshot_to_obs(snapshot)
        info = self._game.get_info()
        info["delta_score"] = 0

        return obs, info

    def step(
        self,
        action: Union[int, np.ndarray]
    ) -> Tuple[Dict[str, np.ndarray], float, bool, bool, Dict[str, Any]]:
        """
        Execute one step.

        Args:
            action: Column index in [0, cols).

        Returns:
            (observation, reward, terminated, truncated, info) tuple.

        Raises:
            ValueError: If the action is not a column of the board.
        """
        if isinstance(action, np.ndarray):
            action = int(action.item() if action.ndim == 0 else action[0])
        col = int(action)

        result = self._game.drop_column(col)

        info = self._game.get_info()
        info["delta_score"] = result.delta_score
        info["merges_this_step"] = len(result.merges)
        info["merge_kinds"] = [event.kind.value for event in result.merges]

        if result.accepted:
            self._invalid_streak = 0
        else:
            self._invalid_streak += 1
            info["rejected"] = result.status.value

        terminated = self._game.is_over
        truncated = not terminated and (
            self._game.drops_used >= self._config.caps.max_drops
            or self._invalid_streak >= self._config.caps.max_invalid_actions
        )
        if truncated:
            info["truncated_reason"] = (
                "max_drops" if self._game.drops_used >= self._config.caps.max_drops
                else "invalid_actions"
            )

        obs = self._snapshot_to_obs(result.snapshot)
        reward = float(result.delta_score)

        if self._debug:
            print(f"[DEBUG] Step: col={col}, status={result.status.value}, "
                  f"delta_score={result.delta_score}, empty={obs['empty_cells']}")
            if terminated:
                print(f"[DEBUG] TERMINATED: {info.get('terminated_reason', 'unknown')}")
            elif truncated:
                print(f"[DEBUG] TRUNCATED: {info['truncated_reason']}")

        if self.render_mode == "human":
            self.render()

        return obs, reward, terminated, truncated, info

    def _snapshot_to_obs(self, snapshot: GameSnapshot) -> Dict[str, np.ndarray]:
        """Convert snapshot to observation dict."""
        return snapshot.to_obs_dict()

    def _render_text(self) -> str:
        snapshot = self._game.snapshot()
        header = (f"Score: {snapshot.score}  High: {snapshot.high_score}  "
                  f"Current: {snapshot.current_value}  Next: {snapshot.next_value}")
        if snapshot.is_over:
            header += "  GAME OVER"
        return header + "\n" + format_board(snapshot.board)

    def render(self) -> Optional[str]:
        """
        Render the current game state.

        Returns:
            Board text if render_mode is "ansi", None otherwise.
        """
        if self.render_mode == "ansi":
            return self._render_text()

        if self.render_mode == "human":
            print(self._render_text())

        return None

    def close(self) -> None:
        """Clean up resources."""

    def action_masks(self) -> np.ndarray:
        """Boolean mask of columns that currently accept the block."""
        return self._game.snapshot().to_obs_dict()["legal_mask"].astype(bool)

    @property
    def game(self) -> GameSession:
        """Access to underlying game session (for debugging/tools)."""
        return self._game

    @property
    def config(self) -> GameConfig:
        """Game configuration."""
        return self._config
