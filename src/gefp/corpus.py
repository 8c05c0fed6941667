"""Append-only store of scan signatures."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, Sequence

import numpy as np

from gefp.errors import IndexAlreadyBuilt, ShapeMismatch

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


@dataclass(slots=True, eq=False)
class ScanSignature:
    """
    One scan: ordered word ids with the 2D position of every occurrence.

    ``words``, ``x`` and ``y`` always share the same length. The remaining fields
    are filled in once by the index builder, one entry per distinct word.
    """

    words: NDArray[np.int64]
    x: NDArray[np.float64]
    y: NDArray[np.float64]

    # Derived by TermIndex.build
    terms: NDArray[np.int64] | None = None  # distinct word ids, ascending
    counts: NDArray[np.int64] | None = None  # raw occurrence count per term
    term_frequency: NDArray[np.float64] | None = None  # counts / total_weight
    weights: NDArray[np.float64] | None = None  # active TF-IDF weight per term
    total_weight: float = 0.0
    norm: float = 0.0

    def __len__(self) -> int:
        return len(self.words)

    @classmethod
    def from_sequences(
        cls,
        words: ArrayLike,
        x_positions: ArrayLike,
        y_positions: ArrayLike,
    ) -> ScanSignature:
        """Validate and copy parallel sequences into a new signature."""
        w = np.array(words, dtype=np.int64).ravel()
        x = np.array(x_positions, dtype=np.float64).ravel()
        y = np.array(y_positions, dtype=np.float64).ravel()
        if not (len(w) == len(x) == len(y)):
            raise ShapeMismatch(
                f"word/x/y sequences differ in length: {len(w)}, {len(x)}, {len(y)}"
            )
        if len(w) and w.min() < 0:
            raise ValueError("word ids must be non-negative")
        for arr in (w, x, y):
            arr.setflags(write=False)
        return cls(words=w, x=x, y=y)

    @property
    def is_indexed(self) -> bool:
        return self.weights is not None


class ScanCorpus:
    """
    Owns every inserted scan. Insertion is refused once the corpus is closed.

    Args:
        scans: Optional initial scans (word, x, y) triples.
    """

    def __init__(self, scans: Sequence[tuple[ArrayLike, ArrayLike, ArrayLike]] | None = None):
        self._scans: list[ScanSignature] = []
        self._closed = False
        for words, xs, ys in scans or ():
            self.insert(words, xs, ys)

    def __len__(self) -> int:
        return len(self._scans)

    def __getitem__(self, index: int) -> ScanSignature:
        return self._scans[index]

    def __iter__(self) -> Iterator[ScanSignature]:
        return iter(self._scans)

    @property
    def closed(self) -> bool:
        return self._closed

    def insert(self, words: ArrayLike, x_positions: ArrayLike, y_positions: ArrayLike) -> int:
        """Append a scan and return its index."""
        if self._closed:
            raise IndexAlreadyBuilt("corpus is closed; insert scans before prepare()")
        signature = ScanSignature.from_sequences(words, x_positions, y_positions)
        self._scans.append(signature)
        return len(self._scans) - 1

    def close(self) -> list[ScanSignature]:
        """Freeze the corpus and return its scans in insertion order."""
        self._closed = True
        return list(self._scans)
