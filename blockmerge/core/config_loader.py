"""
Configuration Loader
====================

Loads and validates game_config.yaml, providing typed access to all parameters.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import yaml


@dataclass(frozen=True)
class BoardConfig:
    """Grid geometry."""
    rows: int
    cols: int

    @property
    def center_col(self) -> int:
        return self.cols // 2


@dataclass(frozen=True)
class GenerationConfig:
    """Block generation parameters."""
    ceiling: int                              # Max value used for weighting
    early_game_max: int                       # Largest board value still "early game"
    early_values: Tuple[int, ...]
    early_probabilities: Tuple[float, ...]
    first_block: int                          # First current block of a session


@dataclass(frozen=True)
class EvaluatorConfig:
    """Weights of the heuristic move evaluator."""
    direct_merge_bonus: float
    top_merge_bonus: float
    keep_low_bonus: float
    stack_ok_bonus: float
    stack_bad_penalty: float
    disruption_overflow_penalty: float
    disruption_structure_penalty: float
    horizontal_keep_low_bonus: float
    horizontal_overflow_penalty: float
    lookahead_merge_bonus: float
    lookahead_stack_bonus: float
    lookahead_factor: float
    depth_per_row: float
    danger_rows: int
    danger_penalty: float
    l_shape_bonus: float
    structure_ok_bonus: float
    structure_bad_penalty: float
    structure_factor: float


@dataclass(frozen=True)
class PersistenceConfig:
    """Default locations and naming for the score collaborators."""
    high_score_path: str
    leaderboard_path: str
    leaderboard_size: int
    ai_name: str
    default_name: str


@dataclass(frozen=True)
class CapsConfig:
    """Environment limits."""
    max_drops: int
    max_invalid_actions: int


@dataclass(frozen=True)
class GameConfig:
    """
    Complete game configuration loaded from YAML.

    All values are immutable to prevent accidental modification during runtime.
    """
    board: BoardConfig
    generation: GenerationConfig
    evaluator: EvaluatorConfig
    persistence: PersistenceConfig
    caps: CapsConfig

    @property
    def rows(self) -> int:
        return self.board.rows

    @property
    def cols(self) -> int:
        return self.board.cols


def _is_power_of_two(value: int) -> bool:
    return value >= 2 and (value & (value - 1)) == 0


def _validate_config(config: GameConfig) -> None:
    """Validate configuration consistency."""
    if config.board.rows < 3 or config.board.cols < 3:
        raise ValueError(
            f"Board must be at least 3x3, got {config.board.rows}x{config.board.cols}"
        )

    gen = config.generation
    if not _is_power_of_two(gen.ceiling):
        raise ValueError(f"generation.ceiling must be a power of two, got {gen.ceiling}")

    if len(gen.early_values) != len(gen.early_probabilities):
        raise ValueError(
            f"early_values ({len(gen.early_values)}) and early_probabilities "
            f"({len(gen.early_probabilities)}) must have the same length"
        )

    if not gen.early_values:
        raise ValueError("early_values must not be empty")

    for value in gen.early_values + (gen.first_block,):
        if not _is_power_of_two(value):
            raise ValueError(f"Block values must be powers of two >= 2, got {value}")

    if abs(sum(gen.early_probabilities) - 1.0) > 1e-6:
        raise ValueError(
            f"early_probabilities must sum to 1.0, got {sum(gen.early_probabilities)}"
        )

    if config.persistence.leaderboard_size < 1:
        raise ValueError("persistence.leaderboard_size must be positive")

    if config.evaluator.danger_rows < 0:
        raise ValueError("evaluator.danger_rows must not be negative")


def load_config(config_path: Optional[str] = None) -> GameConfig:
    """
    Load and validate game configuration from YAML.

    Args:
        config_path: Path to game_config.yaml. If None, uses default location.

    Returns:
        Validated GameConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config validation fails.
    """
    if config_path is None:
        config_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)),
            "game_config.yaml"
        )

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        raw = yaml.safe_load(f)

    board_data = raw["board"]
    board = BoardConfig(
        rows=int(board_data.get("rows", 8)),
        cols=int(board_data.get("cols", 5))
    )

    gen_data = raw["generation"]
    generation = GenerationConfig(
        ceiling=int(gen_data.get("ceiling", 64)),
        early_game_max=int(gen_data.get("early_game_max", 8)),
        early_values=tuple(int(v) for v in gen_data["early_values"]),
        early_probabilities=tuple(float(p) for p in gen_data["early_probabilities"]),
        first_block=int(gen_data.get("first_block", 2))
    )

    ev = raw["evaluator"]
    evaluator = EvaluatorConfig(
        direct_merge_bonus=float(ev["direct_merge_bonus"]),
        top_merge_bonus=float(ev["top_merge_bonus"]),
        keep_low_bonus=float(ev["keep_low_bonus"]),
        stack_ok_bonus=float(ev["stack_ok_bonus"]),
        stack_bad_penalty=float(ev["stack_bad_penalty"]),
        disruption_overflow_penalty=float(ev["disruption_overflow_penalty"]),
        disruption_structure_penalty=float(ev["disruption_structure_penalty"]),
        horizontal_keep_low_bonus=float(ev["horizontal_keep_low_bonus"]),
        horizontal_overflow_penalty=float(ev["horizontal_overflow_penalty"]),
        lookahead_merge_bonus=float(ev["lookahead_merge_bonus"]),
        lookahead_stack_bonus=float(ev["lookahead_stack_bonus"]),
        lookahead_factor=float(ev["lookahead_factor"]),
        depth_per_row=float(ev["depth_per_row"]),
        danger_rows=int(ev.get("danger_rows", 2)),
        danger_penalty=float(ev["danger_penalty"]),
        l_shape_bonus=float(ev["l_shape_bonus"]),
        structure_ok_bonus=float(ev["structure_ok_bonus"]),
        structure_bad_penalty=float(ev["structure_bad_penalty"]),
        structure_factor=float(ev["structure_factor"])
    )

    # Persistence and caps are optional sections
    persist_data = raw.get("persistence", {})
    persistence = PersistenceConfig(
        high_score_path=str(persist_data.get("high_score_path", "~/.blockmerge/high_score.json")),
        leaderboard_path=str(persist_data.get("leaderboard_path", "~/.blockmerge/leaderboard.json")),
        leaderboard_size=int(persist_data.get("leaderboard_size", 10)),
        ai_name=str(persist_data.get("ai_name", "AI")),
        default_name=str(persist_data.get("default_name", "Anonymous"))
    )

    caps_data = raw.get("caps", {})
    caps = CapsConfig(
        max_drops=int(caps_data.get("max_drops", 5000)),
        max_invalid_actions=int(caps_data.get("max_invalid_actions", 50))
    )

    config = GameConfig(
        board=board,
        generation=generation,
        evaluator=evaluator,
        persistence=persistence,
        caps=caps
    )

    _validate_config(config)
    return config


# Module-level singleton for convenience
_cached_config: Optional[GameConfig] = None


def get_config() -> GameConfig:
    """Get the cached game configuration, loading if necessary."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reload_config(config_path: Optional[str] = None) -> GameConfig:
    """Reload the configuration (useful for testing)."""
    global _cached_config
    _cached_config = load_config(config_path)
    return _cached_config
