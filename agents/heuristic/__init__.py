"""
Heuristic Agent Package

Plays the same column-scoring heuristic as the in-game AI mode. Serves as a
benchmark and example.
"""

from .agent import BlockMergeAgent, create_agent

__all__ = ["BlockMergeAgent", "create_agent"]
