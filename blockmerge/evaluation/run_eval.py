"""
Evaluation Harness
==================

Plays an agent over the fixed seed bank and reports how it did: score
statistics, the largest block reached per game and which merge patterns
produced the points.

Usage:
    python -m blockmerge.evaluation.run_eval --agent agents/heuristic
    python -m blockmerge.evaluation.run_eval --agent agents/template --output results.json
"""

from __future__ import annotations

import argparse
import importlib.util
import json
import os
import sys
import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from blockmerge.core.env_gym import BlockMergeEnv


Policy = Callable[[Dict[str, np.ndarray]], int]

DEFAULT_SEED_BANK = os.path.join(os.path.dirname(__file__), "seed_bank.json")


@dataclass
class EvalResult:
    """One game on one seed."""
    seed: int
    final_score: int
    drops_used: int
    max_tile: int
    merge_kinds: Dict[str, int]
    termination_reason: str
    elapsed_time: float
    actions: Optional[List[int]] = None

    @property
    def merges(self) -> int:
        return sum(self.merge_kinds.values())

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "seed": self.seed,
            "final_score": self.final_score,
            "drops_used": self.drops_used,
            "max_tile": self.max_tile,
            "merge_kinds": dict(self.merge_kinds),
            "termination_reason": self.termination_reason,
            "elapsed_time": self.elapsed_time,
        }
        if self.actions is not None:
            data["actions"] = self.actions
        return data


@dataclass
class EvalSummary:
    """Aggregate view over a list of EvalResults."""
    results: List[EvalResult]
    total_time: float = 0.0
    scores: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        self.scores = np.array([r.final_score for r in self.results], dtype=np.int64)

    @property
    def mean_score(self) -> float:
        return float(self.scores.mean())

    @property
    def std_score(self) -> float:
        return float(self.scores.std())

    @property
    def median_score(self) -> float:
        return float(np.median(self.scores))

    @property
    def min_score(self) -> int:
        return int(self.scores.min())

    @property
    def max_score(self) -> int:
        return int(self.scores.max())

    @property
    def mean_drops(self) -> float:
        return float(np.mean([r.drops_used for r in self.results]))

    @property
    def max_tile_counts(self) -> Dict[int, int]:
        """How many games ended with each largest block, smallest first."""
        counts = Counter(r.max_tile for r in self.results)
        return dict(sorted(counts.items()))

    @property
    def merge_totals(self) -> Dict[str, int]:
        """Merges per pattern kind over every game."""
        totals: Counter = Counter()
        for r in self.results:
            totals.update(r.merge_kinds)
        return dict(totals.most_common())

    def to_dict(self, agent_name: str) -> Dict[str, Any]:
        return {
            "agent": agent_name,
            "timestamp": time.strftime("%Y-%m-%d %H:%M:%S"),
            "mean_score": self.mean_score,
            "std_score": self.std_score,
            "median_score": self.median_score,
            "min_score": self.min_score,
            "max_score": self.max_score,
            "mean_drops": self.mean_drops,
            "max_tile_counts": {str(k): v for k, v in self.max_tile_counts.items()},
            "merge_totals": self.merge_totals,
            "total_time": self.total_time,
            "results": [r.to_dict() for r in self.results],
        }


def load_seed_bank(path: Optional[str] = None) -> List[int]:
    """Seeds from a seed bank JSON file (``{"seeds": [...]}``)."""
    with open(path or DEFAULT_SEED_BANK, "r") as f:
        return [int(seed) for seed in json.load(f)["seeds"]]


def load_agent(agent_path: str) -> Policy:
    """
    Import an agent and return its policy.

    Args:
        agent_path: An ``agent.py`` file or a directory containing one. The
            module must define a ``BlockMergeAgent`` class (instantiated with
            no arguments, ``act`` is used) or a module-level ``act``.

    Raises:
        FileNotFoundError: If there is no agent file.
        ImportError: If the file cannot be imported.
        AttributeError: If the module has neither entry point.
    """
    path = Path(agent_path)
    agent_file = path / "agent.py" if path.is_dir() else path
    if not agent_file.exists():
        raise FileNotFoundError(f"Agent file not found: {agent_file}")

    spec = importlib.util.spec_from_file_location("agent_module", agent_file)
    if spec is None or spec.loader is None:
        raise ImportError(f"Failed to load agent module from {agent_file}")
    module = importlib.util.module_from_spec(spec)
    sys.modules["agent_module"] = module
    spec.loader.exec_module(module)

    agent_cls = getattr(module, "BlockMergeAgent", None)
    if agent_cls is not None:
        policy = getattr(agent_cls(), "act", None)
        if policy is None:
            raise AttributeError("BlockMergeAgent class must have an 'act' method")
        return policy

    policy = getattr(module, "act", None)
    if policy is None:
        raise AttributeError(
            f"{agent_file} defines neither a BlockMergeAgent class nor an act function"
        )
    return policy


def play_seed(
    policy: Policy,
    seed: int,
    env: Optional[BlockMergeEnv] = None,
    record_actions: bool = False
) -> EvalResult:
    """
    Play one full game.

    Args:
        policy: Maps an observation to a column.
        seed: Game seed.
        env: Environment to reuse. A default one is created if None.
        record_actions: If True, keep the column sequence.

    Returns:
        EvalResult for the game.
    """
    owns_env = env is None
    env = env if env is not None else BlockMergeEnv()
    actions: Optional[List[int]] = [] if record_actions else None
    kinds: Counter = Counter()

    start = time.time()
    obs, info = env.reset(seed=seed)
    terminated = truncated = False
    while not (terminated or truncated):
        col = int(policy(obs))
        if actions is not None:
            actions.append(col)
        obs, _, terminated, truncated, info = env.step(col)
        kinds.update(info["merge_kinds"])

    if owns_env:
        env.close()

    return EvalResult(
        seed=seed,
        final_score=int(info["score"]),
        drops_used=int(info["drops_used"]),
        max_tile=int(info["max_value"]),
        merge_kinds=dict(kinds),
        termination_reason=info["terminated_reason"] or info.get("truncated_reason", ""),
        elapsed_time=time.time() - start,
        actions=actions
    )


def evaluate_agent(
    policy: Policy,
    seeds: Optional[List[int]] = None,
    record_actions: bool = False,
    verbose: bool = True,
    config_path: Optional[str] = None
) -> EvalSummary:
    """
    Play ``policy`` once per seed.

    Args:
        policy: Agent policy (obs) -> column.
        seeds: Seeds to play. The bundled seed bank if None.
        record_actions: If True, keep every game's column sequence.
        verbose: If True, print one line per game and the summary.
        config_path: Game config to play with. Default config if None.

    Raises:
        ValueError: If ``seeds`` is empty.
    """
    seeds = load_seed_bank() if seeds is None else seeds
    if not seeds:
        raise ValueError("No seeds to evaluate")

    env = BlockMergeEnv(config_path=config_path)
    start = time.time()
    results = []
    for i, seed in enumerate(seeds, 1):
        result = play_seed(policy, seed, env=env, record_actions=record_actions)
        results.append(result)
        if verbose:
            print(f"[{i}/{len(seeds)}] seed={seed} score={result.final_score} "
                  f"max_tile={result.max_tile} drops={result.drops_used} "
                  f"({result.termination_reason}, {result.elapsed_time:.2f}s)")
    env.close()

    summary = EvalSummary(results=results, total_time=time.time() - start)
    if verbose:
        print()
        print(format_summary(summary))
    return summary


def format_summary(summary: EvalSummary) -> str:
    """Multi-line text report of a summary."""
    lines = [
        "=" * 50,
        "EVALUATION SUMMARY",
        "=" * 50,
        f"Games:         {len(summary.results)}",
        f"Score:         mean {summary.mean_score:.1f} +/- {summary.std_score:.1f}, "
        f"median {summary.median_score:.1f}",
        f"Score range:   {summary.min_score} .. {summary.max_score}",
        f"Mean drops:    {summary.mean_drops:.1f}",
        "Largest block:",
    ]
    for tile, count in summary.max_tile_counts.items():
        lines.append(f"  {tile:>8}: {count}")
    lines.append("Merges by pattern:")
    for kind, count in summary.merge_totals.items():
        lines.append(f"  {kind:>20}: {count}")
    lines.append(f"Total time:    {summary.total_time:.2f}s")
    lines.append("=" * 50)
    return "\n".join(lines)


def save_results(summary: EvalSummary, agent_name: str, output_path: str) -> None:
    """Write the summary and every game result as JSON."""
    with open(output_path, "w") as f:
        json.dump(summary.to_dict(agent_name), f, indent=2)
    print(f"Results saved to {output_path}")


def main():
    parser = argparse.ArgumentParser(description="Evaluate a block merge agent")
    parser.add_argument("--agent", type=str, required=True,
                        help="Path to agent directory or agent.py file")
    parser.add_argument("--seeds", type=str, default=None,
                        help="Seed bank JSON (bundled bank if not specified)")
    parser.add_argument("--config", type=str, default=None,
                        help="game_config.yaml to play with (default config if not specified)")
    parser.add_argument("--output", type=str, default=None,
                        help="Write results JSON here")
    parser.add_argument("--record", action="store_true",
                        help="Keep each game's column sequence in the results")
    parser.add_argument("--quiet", action="store_true",
                        help="Only print errors")
    args = parser.parse_args()

    try:
        policy = load_agent(args.agent)
    except (FileNotFoundError, ImportError, AttributeError) as e:
        print(f"[ERROR] Could not load agent: {e}")
        return 1

    summary = evaluate_agent(
        policy,
        seeds=load_seed_bank(args.seeds) if args.seeds else None,
        record_actions=args.record,
        verbose=not args.quiet,
        config_path=args.config
    )

    if args.output:
        save_results(summary, Path(args.agent).name, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
