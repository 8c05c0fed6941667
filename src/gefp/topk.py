"""
k-best selection over (score, scan index) pairs.

Order everywhere: descending score, ties broken by ascending scan index.
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


@dataclass(frozen=True, slots=True)
class ScoreEntry:
    score: float
    scan_index: int

    def as_pair(self) -> tuple[int, float]:
        return self.scan_index, self.score


def select_top_k(
    scores: ArrayLike,
    indices: ArrayLike,
    top_k: int | None,
) -> tuple[NDArray[np.int64], NDArray[np.float64]]:
    """
    Select the k best candidates of a batch.

    Uses np.argpartition to cut the batch down when k << n, then a stable
    lexsort on (index, -score) for the final order.

    Args:
        scores: Score per candidate.
        indices: Scan index per candidate.
        top_k: Number of results (None for all).

    Returns:
        (sorted_indices, sorted_scores)
    """
    scores = np.asarray(scores, dtype=np.float64)
    indices = np.asarray(indices, dtype=np.int64)
    n = len(scores)

    if top_k is not None and top_k < n:
        # keep every candidate tied with the k-th best score so ties resolve by index
        kth = -np.partition(-scores, top_k - 1)[top_k - 1]
        keep = scores >= kth
        scores, indices = scores[keep], indices[keep]

    order = np.lexsort((indices, -scores))
    if top_k is not None:
        order = order[:top_k]
    return indices[order], scores[order]


class TopK:
    """
    Bounded collection of the best ``k`` entries seen so far.

    A min-heap keyed on (score, -index) keeps the current worst entry on top,
    so a new entry is admitted only if it beats it.
    """

    def __init__(self, k: int):
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")
        self.k = k
        self._heap: list[tuple[float, int]] = []

    def __len__(self) -> int:
        return len(self._heap)

    def push(self, score: float, scan_index: int) -> bool:
        """Offer one entry; returns True if it was retained."""
        key = (float(score), -int(scan_index))
        if len(self._heap) < self.k:
            heapq.heappush(self._heap, key)
            return True
        if key > self._heap[0]:
            heapq.heapreplace(self._heap, key)
            return True
        return False

    def extend(self, scores: ArrayLike, indices: ArrayLike) -> None:
        """Offer a batch; only its own top k can enter."""
        best_indices, best_scores = select_top_k(scores, indices, self.k)
        for scan_index, score in zip(best_indices.tolist(), best_scores.tolist()):
            if not self.push(score, scan_index):
                # batch is sorted, nothing after a rejection can enter
                break

    def results(self) -> list[ScoreEntry]:
        return [
            ScoreEntry(score=score, scan_index=-neg_index)
            for score, neg_index in sorted(self._heap, key=lambda e: (-e[0], -e[1]))
        ]

