"""Bag-of-words cosine scoring through the inverted index."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from gefp.topk import ScoreEntry, TopK

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

    from gefp.tfidf import TermIndex


@dataclass(slots=True)
class BowAccumulation:
    """Per-query working state; owned by a single scoring call."""

    term_ids: NDArray[np.int64]
    query_weights: NDArray[np.float64]
    query_norm: float
    candidates: NDArray[np.int64]
    dots: NDArray[np.float64]
    cosine: NDArray[np.float64]


def accumulate(index: TermIndex, query_words: ArrayLike) -> BowAccumulation:
    """
    Dot products of the query vector with every scan sharing a word with it.

    Unknown words carry no weight. Scans without a shared word are not
    candidates. A zero norm on either side yields a cosine of 0.
    """
    term_ids, query_weights = index.query_weights(query_words)
    query_norm = float(np.sqrt(np.dot(query_weights, query_weights)))
    candidates = index.candidates(term_ids)

    if len(candidates) == 0:
        empty = np.array([], dtype=np.float64)
        return BowAccumulation(term_ids, query_weights, query_norm, candidates, empty, empty)

    rows = index.weights[term_ids, :][:, candidates]
    dots = np.asarray(rows.T @ query_weights, dtype=np.float64).ravel()
    denominators = query_norm * index.norm_array[candidates]
    cosine = np.divide(
        dots, denominators, out=np.zeros_like(dots), where=denominators > 0
    )
    return BowAccumulation(term_ids, query_weights, query_norm, candidates, dots, cosine)


class BagOfWordsScorer:
    """
    Cosine similarity between TF-IDF vectors.

    Args:
        index: Built term index.
        kbest: Results returned per query.
    """

    def __init__(self, index: TermIndex, kbest: int):
        self.index = index
        self.kbest = kbest

    def score(self, query_words: ArrayLike) -> list[ScoreEntry]:
        acc = accumulate(self.index, query_words)
        selector = TopK(self.kbest)
        selector.extend(acc.cosine, acc.candidates)
        return selector.results()
