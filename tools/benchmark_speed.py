"""
Performance Benchmark
=====================

Measures drop throughput of the raw session, the Gymnasium env and the
heuristic move evaluator.

Usage:
    python -m tools.benchmark_speed [--steps S] [--quick]
"""

from __future__ import annotations

import argparse
import sys
import time
import numpy as np

from blockmerge.core.config_loader import load_config
from blockmerge.core.env_gym import BlockMergeEnv
from blockmerge.core.game import GameSession


def _random_legal(rng: np.random.Generator, legal_mask: np.ndarray) -> int:
    legal = np.flatnonzero(legal_mask)
    return int(rng.choice(legal)) if legal.size else 0


def benchmark_single_env(
    num_steps: int = 1000,
    seed: int = 42
) -> dict:
    """
    Benchmark single environment performance with random legal columns.

    Args:
        num_steps: Number of steps to run.
        seed: Random seed.

    Returns:
        Dict with timing results.
    """
    env = BlockMergeEnv()
    rng = np.random.default_rng(seed)

    # Warmup
    obs, _ = env.reset(seed=seed)
    for _ in range(10):
        obs, _, terminated, truncated, _ = env.step(_random_legal(rng, obs["legal_mask"]))
        if terminated or truncated:
            obs, _ = env.reset()

    # Benchmark
    obs, _ = env.reset(seed=seed)
    start = time.perf_counter()

    for _ in range(num_steps):
        obs, _, terminated, truncated, _ = env.step(_random_legal(rng, obs["legal_mask"]))
        if terminated or truncated:
            obs, _ = env.reset()

    elapsed = time.perf_counter() - start
    env.close()

    return {
        "mode": "env",
        "num_steps": num_steps,
        "elapsed_seconds": elapsed,
        "steps_per_second": num_steps / elapsed,
        "ms_per_step": (elapsed * 1000) / num_steps
    }


def benchmark_session(
    num_steps: int = 1000,
    seed: int = 42,
    use_ai: bool = False
) -> dict:
    """
    Benchmark raw GameSession without Gym overhead.

    Args:
        num_steps: Number of drops.
        seed: Random seed.
        use_ai: If True, every column is picked by the move evaluator.

    Returns:
        Dict with timing results.
    """
    config = load_config()
    game = GameSession(config=config, seed=seed)
    rng = np.random.default_rng(seed)

    def next_column() -> int:
        if use_ai:
            col = game.best_column()
            return col if col is not None else 0
        legal = game.snapshot().legal_columns
        return int(rng.choice(legal)) if legal else 0

    game.restart(seed=seed)
    games = 1
    start = time.perf_counter()

    for _ in range(num_steps):
        result = game.drop_column(next_column())
        if result.terminated or not result.accepted:
            game.restart()
            games += 1

    elapsed = time.perf_counter() - start

    return {
        "mode": "session_ai" if use_ai else "session",
        "num_steps": num_steps,
        "games": games,
        "elapsed_seconds": elapsed,
        "steps_per_second": num_steps / elapsed,
        "ms_per_step": (elapsed * 1000) / num_steps
    }


def run_all_benchmarks(steps: int = 500) -> list:
    """Run every benchmark and print a summary table."""
    results = []

    print("=" * 60)
    print("BLOCK MERGE PERFORMANCE BENCHMARK")
    print("=" * 60)
    print()

    for label, fn in (
        ("GameSession (random)", lambda: benchmark_session(num_steps=steps)),
        ("GameSession (AI)", lambda: benchmark_session(num_steps=steps, use_ai=True)),
        ("BlockMergeEnv (random)", lambda: benchmark_single_env(num_steps=steps)),
    ):
        print(f"Benchmarking {label}...")
        result = fn()
        results.append(result)
        print(f"  Steps/sec: {result['steps_per_second']:.1f}")
        print(f"  ms/step:   {result['ms_per_step']:.3f}")
        print()

    print("=" * 60)
    print("SUMMARY")
    print("=" * 60)
    print()
    print(f"{'Mode':<20} {'Steps/s':>12} {'ms/step':>10}")
    print("-" * 44)

    for r in results:
        print(f"{r['mode']:<20} {r['steps_per_second']:>12.1f} {r['ms_per_step']:>10.3f}")

    return results


def main():
    parser = argparse.ArgumentParser(description="Benchmark block merge performance")
    parser.add_argument("--steps", type=int, default=500, help="Steps per benchmark")
    parser.add_argument("--quick", action="store_true", help="Quick benchmark (fewer steps)")

    args = parser.parse_args()

    steps = 100 if args.quick else args.steps
    run_all_benchmarks(steps=steps)

    return 0


if __name__ == "__main__":
    sys.exit(main())
