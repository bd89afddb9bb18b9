"""
Block Merge Core - The heart of the game.

This module provides the turn-level game session, the Gymnasium environment
wrapper, and all supporting systems (generation, landing, merging, scoring,
move evaluation, persistence).

Main exports:
- BlockMergeEnv: Gymnasium environment for single-agent training
- GameSession: Game state machine (used by the env and the tools)
- MergeEngine: Pure drop resolution
- MoveEvaluator: Heuristic column picker behind the AI mode
- GameConfig: Configuration loaded from game_config.yaml
"""

from blockmerge.core.config_loader import GameConfig, load_config
from blockmerge.core.merge_system import MergeEngine, MergeEvent, MergeKind
from blockmerge.core.move_evaluator import MoveEvaluator
from blockmerge.core.persistence import (
    JsonHighScoreStore,
    JsonLeaderboardStore,
    MemoryHighScoreStore,
    MemoryLeaderboardStore,
    PersistenceError,
)
from blockmerge.core.game import DropResult, DropStatus, GameSession, SessionState
from blockmerge.core.env_gym import BlockMergeEnv
from blockmerge.core.replay_recorder import (
    ReplayRecorder,
    record_episode,
    generate_replay_filename,
    replay_actions,
    find_divergence,
    verify_replay,
)

__all__ = [
    "GameConfig",
    "load_config",
    "MergeEngine",
    "MergeEvent",
    "MergeKind",
    "MoveEvaluator",
    "JsonHighScoreStore",
    "JsonLeaderboardStore",
    "MemoryHighScoreStore",
    "MemoryLeaderboardStore",
    "PersistenceError",
    "DropResult",
    "DropStatus",
    "GameSession",
    "SessionState",
    "BlockMergeEnv",
    "ReplayRecorder",
    "record_episode",
    "generate_replay_filename",
    "replay_actions",
    "find_divergence",
    "verify_replay",
]
