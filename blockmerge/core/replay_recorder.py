"""
Replay Recorder
===============

Records block merge episodes and checks them again later.

A game is fully determined by its seed, its gameplay config and the columns
played, so a replay stores just those plus the score after every drop. Running
the columns again on a fresh environment must reproduce that score trace
exactly; ``find_divergence`` reports the first drop where it does not.

Usage:
    env = BlockMergeEnv()
    with ReplayRecorder(env, agent_name="heuristic") as recorder:
        obs, info = recorder.reset(seed=42)
        done = False
        while not done:
            obs, reward, terminated, truncated, info = recorder.step(agent(obs))
            done = terminated or truncated
        recorder.save("heuristic_42.json")
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import gymnasium as gym
import numpy as np

from blockmerge.core.config_loader import GameConfig, get_config
from blockmerge.core.env_gym import BlockMergeEnv


ReplayData = Dict[str, Any]


def generate_replay_filename(
    agent_name: str = "replay",
    seed: Optional[int] = None,
    directory: Optional[Union[str, Path]] = None
) -> Path:
    """``{agent}_{YYYYmmdd_HHMMSS}[_s{seed}].json``, optionally inside ``directory``."""
    parts = [agent_name, datetime.now().strftime("%Y%m%d_%H%M%S")]
    if seed is not None:
        parts.append(f"s{seed}")
    name = "_".join(parts) + ".json"
    return Path(directory) / name if directory else Path(name)


def compute_config_hash(config: Optional[GameConfig] = None) -> str:
    """
    Short fingerprint of the settings a replay depends on.

    Only board geometry and block generation change what a column sequence
    does; evaluator weights, persistence and caps are left out.
    """
    config = config if config is not None else get_config()
    gameplay = {
        "board": asdict(config.board),
        "generation": asdict(config.generation),
    }
    return hashlib.md5(json.dumps(gameplay, sort_keys=True).encode()).hexdigest()[:8]


def _as_column(action: Union[int, np.ndarray]) -> int:
    if isinstance(action, np.ndarray):
        return int(action.reshape(-1)[0])
    return int(action)


@dataclass
class Replay:
    """One recorded episode."""
    seed: Optional[int]
    agent: str
    config_hash: str
    actions: List[int] = field(default_factory=list)
    scores: List[int] = field(default_factory=list)
    rewards: List[float] = field(default_factory=list)
    termination_reason: str = ""

    @property
    def final_score(self) -> int:
        return self.scores[-1] if self.scores else 0

    def to_dict(self) -> ReplayData:
        data = asdict(self)
        data["final_score"] = self.final_score
        data["total_steps"] = len(self.actions)
        data["total_reward"] = sum(self.rewards)
        return data


class ReplayRecorder:
    """
    Wraps a BlockMergeEnv and records every column played after ``reset``.

    Steps taken before the first ``reset`` are forwarded but not recorded.
    """

    def __init__(
        self,
        env: gym.Env,
        agent_name: str = "unknown",
        auto_save_path: Optional[str] = None,
        debug: bool = False
    ):
        """
        Args:
            env: Environment to record.
            agent_name: Stored in the replay.
            auto_save_path: If set, the replay is written there when the
                episode ends.
            debug: If True, print every recorded drop.
        """
        self.env = env
        self.agent_name = agent_name
        self.auto_save_path = auto_save_path
        self._debug = debug

        config = getattr(env.unwrapped, "config", None)
        self._config_hash = compute_config_hash(config if isinstance(config, GameConfig) else None)
        self._replay: Optional[Replay] = None

    @property
    def recording(self) -> bool:
        return self._replay is not None

    @property
    def observation_space(self):
        return self.env.observation_space

    @property
    def action_space(self):
        return self.env.action_space

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict] = None
    ) -> Tuple[Any, Dict]:
        """Reset the environment and start a new replay."""
        self._replay = Replay(seed=seed, agent=self.agent_name, config_hash=self._config_hash)
        return self.env.reset(seed=seed, options=options)

    def step(self, action: Union[int, np.ndarray]) -> Tuple[Any, float, bool, bool, Dict]:
        """Forward a column to the environment and record the outcome."""
        col = _as_column(action)
        obs, reward, terminated, truncated, info = self.env.step(col)

        replay = self._replay
        if replay is not None:
            replay.actions.append(col)
            replay.scores.append(int(info["score"]))
            replay.rewards.append(float(reward))
            if terminated:
                replay.termination_reason = info.get("terminated_reason") or "unknown"
            elif truncated:
                replay.termination_reason = info.get("truncated_reason", "truncated")

            if self._debug:
                print(f"[DEBUG] Replay drop {len(replay.actions)}: col={col} "
                      f"score={replay.scores[-1]}")

        if (terminated or truncated) and self.auto_save_path:
            self.save(self.auto_save_path)

        return obs, reward, terminated, truncated, info

    def get_replay_data(self) -> ReplayData:
        """The current replay as a JSON-ready dict (empty replay before ``reset``)."""
        replay = self._replay or Replay(seed=None, agent=self.agent_name,
                                        config_hash=self._config_hash)
        return replay.to_dict()

    def save(
        self,
        path: Optional[Union[str, Path]] = None,
        overwrite: bool = True,
        directory: Optional[Union[str, Path]] = None
    ) -> Path:
        """
        Write the replay as JSON.

        Args:
            path: Target file. A timestamped name is generated if None.
            overwrite: If False, refuse to replace an existing file.
            directory: Directory for the generated name.

        Raises:
            FileExistsError: If the file exists and ``overwrite`` is False.
        """
        data = self.get_replay_data()
        if path is None:
            path = generate_replay_filename(self.agent_name, data["seed"], directory)
        path = Path(path)
        if path.exists() and not overwrite:
            raise FileExistsError(f"Replay file already exists: {path}")

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(data, f, indent=2)

        print(f"Replay saved: {path} (seed={data['seed']}, drops={data['total_steps']}, "
              f"score={data['final_score']})")
        return path

    def close(self) -> None:
        self.env.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def record_episode(
    env: gym.Env,
    agent_fn: Callable[[Dict[str, np.ndarray]], int],
    seed: int,
    save_path: Optional[str] = None,
    agent_name: str = "unknown"
) -> ReplayData:
    """Play one episode with ``agent_fn`` and return (and optionally save) its replay."""
    recorder = ReplayRecorder(env, agent_name=agent_name)
    obs, _ = recorder.reset(seed=seed)
    terminated = truncated = False
    while not (terminated or truncated):
        obs, _, terminated, truncated, _ = recorder.step(agent_fn(obs))

    if save_path:
        recorder.save(save_path)
    return recorder.get_replay_data()


def load_replay(path: Union[str, Path]) -> ReplayData:
    """Read a replay JSON file."""
    with open(path, "r") as f:
        return json.load(f)


def _rerun(data: ReplayData, config_path: Optional[str]) -> List[int]:
    """Score after each recorded column, played on a fresh environment."""
    if data.get("seed") is None:
        raise ValueError("Replay has no seed and cannot be re-run")

    env = BlockMergeEnv(config_path=config_path)
    recorded_hash = data.get("config_hash")
    current_hash = compute_config_hash(env.config)
    if recorded_hash is not None and recorded_hash != current_hash:
        raise ValueError(f"Config hash mismatch: replay {recorded_hash}, current {current_hash}")

    scores: List[int] = []
    env.reset(seed=int(data["seed"]))
    for col in data.get("actions", []):
        _, _, terminated, truncated, info = env.step(int(col))
        scores.append(int(info["score"]))
        if terminated or truncated:
            break
    env.close()
    return scores


def replay_actions(data: ReplayData, config_path: Optional[str] = None) -> int:
    """
    Re-run a recording and return its final score.

    Raises:
        ValueError: If the replay has no seed or was recorded with a
            different gameplay config.
    """
    scores = _rerun(data, config_path)
    return scores[-1] if scores else 0


def find_divergence(data: ReplayData, config_path: Optional[str] = None) -> Optional[int]:
    """
    Index of the first drop whose re-run score differs from the recording.

    Returns:
        None if the whole score trace (and the final score) is reproduced.
    """
    recorded = [int(s) for s in data.get("scores", [])]
    rerun = _rerun(data, config_path)
    for i, (expected, actual) in enumerate(zip(recorded, rerun)):
        if expected != actual:
            return i
    if len(recorded) != len(rerun):
        return min(len(recorded), len(rerun))
    final = rerun[-1] if rerun else 0
    if final != int(data.get("final_score", final)):
        return max(len(rerun) - 1, 0)
    return None


def verify_replay(data: ReplayData, config_path: Optional[str] = None) -> bool:
    """True if re-running ``data`` reproduces every recorded score."""
    return find_divergence(data, config_path=config_path) is None
