"""
Bag-of-distances rewrite of scan signatures.

Every pair of occurrences (i, j), i < j, whose Euclidean distance d falls in
[start, end) becomes one token, the index of d's bin:

    token = floor((d - start) / interval)

Tokens are emitted in pair order (0,1), (0,2), ..., (1,2), ... and placed at
the pair's midpoint. Word identity is dropped; only relative geometry remains,
so a rigidly moved copy of a scan yields the same tokens.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from scipy.spatial.distance import pdist

from gefp.config import (
    DEFAULT_DISTANCE_END,
    DEFAULT_DISTANCE_INTERVAL,
    DEFAULT_DISTANCE_START,
)
from gefp.corpus import ScanSignature

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


def distance_tokens(
    x_positions: ArrayLike,
    y_positions: ArrayLike,
    start: float = DEFAULT_DISTANCE_START,
    interval: float = DEFAULT_DISTANCE_INTERVAL,
    end: float = DEFAULT_DISTANCE_END,
) -> tuple[NDArray[np.int64], NDArray[np.float64], NDArray[np.float64]]:
    """
    Binned pairwise distances of a point sequence.

    Returns:
        (tokens, x_midpoints, y_midpoints) aligned arrays.
    """
    x = np.asarray(x_positions, dtype=np.float64).ravel()
    y = np.asarray(y_positions, dtype=np.float64).ravel()
    n = len(x)
    if n < 2:
        empty = np.array([], dtype=np.float64)
        return np.array([], dtype=np.int64), empty, empty

    points = np.column_stack((x, y))
    # pdist's condensed order matches triu_indices(n, 1)
    distances = pdist(points)
    first, second = np.triu_indices(n, 1)

    keep = (distances >= start) & (distances < end)
    n_bins = int(np.ceil((end - start) / interval))
    tokens = np.floor((distances[keep] - start) / interval).astype(np.int64)
    tokens = np.clip(tokens, 0, n_bins - 1)

    first, second = first[keep], second[keep]
    return tokens, (x[first] + x[second]) / 2.0, (y[first] + y[second]) / 2.0


def reformulate(
    signature: ScanSignature,
    start: float = DEFAULT_DISTANCE_START,
    interval: float = DEFAULT_DISTANCE_INTERVAL,
    end: float = DEFAULT_DISTANCE_END,
) -> ScanSignature:
    """New signature whose words are the distance tokens of ``signature``."""
    tokens, xs, ys = distance_tokens(signature.x, signature.y, start, interval, end)
    return ScanSignature.from_sequences(tokens, xs, ys)
