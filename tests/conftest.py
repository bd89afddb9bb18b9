"""
Shared test fixtures.
"""

import os
from typing import Iterable

import pytest
import yaml

import blockmerge
from blockmerge.core.config_loader import load_config


DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(blockmerge.__file__), "game_config.yaml")


class SequenceRng:
    """Random source replaying a fixed cycle of floats in [0, 1)."""

    def __init__(self, values: Iterable[float]):
        self._values = list(values)
        self._index = 0
        self.calls = 0

    def random(self) -> float:
        value = self._values[self._index % len(self._values)]
        self._index += 1
        self.calls += 1
        return value


@pytest.fixture
def sequence_rng():
    """Factory for scripted random sources."""
    return SequenceRng


@pytest.fixture
def make_config(tmp_path):
    """Factory loading the default config with some sections overridden."""
    def _make(**sections):
        with open(DEFAULT_CONFIG_PATH, "r") as f:
            raw = yaml.safe_load(f)
        for name, values in sections.items():
            raw.setdefault(name, {}).update(values)
        path = tmp_path / f"config_{len(list(tmp_path.iterdir()))}.yaml"
        with open(path, "w") as f:
            yaml.safe_dump(raw, f)
        return load_config(str(path))
    return _make
