"""
Scoring System
==============

Accumulates merge results into the session score and tracks the high score.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from blockmerge.core.config_loader import GameConfig, get_config
from blockmerge.core.merge_system import MergeEvent, MergeKind


@dataclass
class ScoreEvent:
    """Record of a scoring event."""
    points: int
    kind: MergeKind

    def __repr__(self) -> str:
        return f"ScoreEvent({self.kind.value}={self.points})"


class ScoreTracker:
    """
    Tracks game score.

    Every merge scores the value it produces, so bigger merges score more.
    The score never decreases within a session. The high score survives
    ``reset()``.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        high_score: int = 0
    ):
        """
        Initialize score tracker.

        Args:
            config: Game configuration. Uses default if None.
            high_score: Previously stored best score.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._score: int = 0
        self._merges: int = 0
        self._high_score: int = max(0, high_score)

    @property
    def score(self) -> int:
        """Current total score."""
        return self._score

    @property
    def merges(self) -> int:
        """Total number of merges performed."""
        return self._merges

    @property
    def high_score(self) -> int:
        """Best score seen, across sessions."""
        return self._high_score

    def apply_merge(self, event: MergeEvent) -> ScoreEvent:
        """
        Apply score for a merge and return the event.

        Args:
            event: The resolved merge.

        Returns:
            ScoreEvent describing the points awarded.
        """
        points = event.new_value
        self._score += points
        self._merges += 1
        return ScoreEvent(points=points, kind=event.kind)

    def apply_merges(self, events: Iterable[MergeEvent]) -> List[ScoreEvent]:
        """Apply a sequence of merges in order."""
        return [self.apply_merge(event) for event in events]

    def update_high_score(self) -> bool:
        """
        Raise the high score to the current score if it is higher.

        Returns:
            True if the high score changed.
        """
        if self._score > self._high_score:
            self._high_score = self._score
            return True
        return False

    def reset(self) -> None:
        """Reset score to zero (high score is kept)."""
        self._score = 0
        self._merges = 0
