"""Shared fixtures for gefp tests."""

import numpy as np
import pytest

from gefp import EngineConfig, GefpEngine


def ring_positions(n: int, radius: float = 2.0) -> tuple[np.ndarray, np.ndarray]:
    """Word positions evenly spaced on a circle, like one sweep of a range sensor."""
    angles = np.linspace(0.0, 2.0 * np.pi, n, endpoint=False)
    return radius * np.cos(angles), radius * np.sin(angles)


@pytest.fixture
def build_engine():
    """Factory: insert word-only scans (ring positions) and prepare the engine."""

    def _build(scans, **config) -> GefpEngine:
        engine = GefpEngine(EngineConfig(**config))
        for words in scans:
            xs, ys = ring_positions(len(words))
            engine.insert(words, xs, ys)
        engine.prepare()
        return engine

    return _build


@pytest.fixture
def example_scans():
    """Two rotated copies of the same circular sequence plus an unrelated scan."""
    return [[5, 12, 5, 30], [12, 5, 30, 5], [7, 8, 9]]


@pytest.fixture
def distinct_scans():
    """Twelve scans of six distinct words each; no two share the same bag of words."""
    return [[(7 * i + 3 * j) % 50 for j in range(6)] for i in range(12)]
