"""
Score Persistence
=================

Boundary contracts for the high score and the leaderboard, with JSON-file and
in-memory implementations.

The game only talks to the protocols. Failures surface as PersistenceError
and never change game state.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union


class PersistenceError(Exception):
    """A store could not read or write its data."""


@dataclass(frozen=True)
class LeaderboardEntry:
    """One leaderboard row."""
    name: str
    score: int
    is_ai: bool
    date: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "LeaderboardEntry":
        return LeaderboardEntry(
            name=str(data["name"]),
            score=int(data["score"]),
            is_ai=bool(data.get("is_ai", False)),
            date=str(data.get("date", ""))
        )


class HighScoreStore(Protocol):
    """Persistent best score."""

    def load(self) -> int:
        ...

    def save(self, score: int) -> None:
        ...


class LeaderboardStore(Protocol):
    """Shared top-N score table."""

    def submit(self, name: str, score: int, is_ai: bool) -> bool:
        ...

    def top(self, limit: int = 10) -> List[LeaderboardEntry]:
        ...


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        with open(path, "r") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise PersistenceError(f"Failed to read {path}: {e}") from e


def _write_json(path: Path, data: Any) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
    except OSError as e:
        raise PersistenceError(f"Failed to write {path}: {e}") from e


class MemoryHighScoreStore:
    """High score kept in memory (tests, headless runs)."""

    def __init__(self, initial: int = 0):
        self._score = initial
        self.saves: List[int] = []

    def load(self) -> int:
        return self._score

    def save(self, score: int) -> None:
        self._score = score
        self.saves.append(score)


class JsonHighScoreStore:
    """
    High score stored in a small JSON file: ``{"high_score": 1234}``.

    A missing file reads as 0.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def load(self) -> int:
        data = _read_json(self.path, {})
        try:
            return int(data.get("high_score", 0))
        except (AttributeError, TypeError, ValueError) as e:
            raise PersistenceError(f"Malformed high score file {self.path}: {e}") from e

    def save(self, score: int) -> None:
        _write_json(self.path, {"high_score": int(score)})


class MemoryLeaderboardStore:
    """Leaderboard kept in memory."""

    def __init__(self):
        self._entries: List[LeaderboardEntry] = []

    def submit(self, name: str, score: int, is_ai: bool) -> bool:
        self._entries.append(LeaderboardEntry(
            name=name,
            score=int(score),
            is_ai=bool(is_ai),
            date=datetime.now().isoformat(timespec="seconds")
        ))
        return True

    def top(self, limit: int = 10) -> List[LeaderboardEntry]:
        return sorted(self._entries, key=lambda e: e.score, reverse=True)[:limit]


class JsonLeaderboardStore:
    """
    Leaderboard stored as a JSON list of entries.

    Only the best ``capacity`` entries are kept on disk.
    """

    def __init__(self, path: Union[str, Path], capacity: int = 100):
        self.path = Path(path).expanduser()
        self.capacity = capacity

    def _load_entries(self) -> List[LeaderboardEntry]:
        data = _read_json(self.path, [])
        try:
            return [LeaderboardEntry.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"Malformed leaderboard file {self.path}: {e}") from e

    def submit(self, name: str, score: int, is_ai: bool) -> bool:
        entries = self._load_entries()
        entries.append(LeaderboardEntry(
            name=name,
            score=int(score),
            is_ai=bool(is_ai),
            date=datetime.now().isoformat(timespec="seconds")
        ))
        entries.sort(key=lambda e: e.score, reverse=True)
        _write_json(self.path, [e.to_dict() for e in entries[:self.capacity]])
        return True

    def top(self, limit: int = 10) -> List[LeaderboardEntry]:
        entries = self._load_entries()
        entries.sort(key=lambda e: e.score, reverse=True)
        return entries[:limit]


def default_high_score_store(path: Optional[str] = None) -> JsonHighScoreStore:
    """JSON high score store at ``path`` or the configured location."""
    if path is None:
        from blockmerge.core.config_loader import get_config
        path = get_config().persistence.high_score_path
    return JsonHighScoreStore(path)


def default_leaderboard_store(path: Optional[str] = None) -> JsonLeaderboardStore:
    """JSON leaderboard store at ``path`` or the configured location."""
    if path is None:
        from blockmerge.core.config_loader import get_config
        path = get_config().persistence.leaderboard_path
    return JsonLeaderboardStore(path)
