"""
Inverted index, order cache and TF-IDF weights over a closed scan corpus.

=============================================================================
LAYOUT:
=============================================================================

1. Vocabulary - sorted distinct word ids; a word's term id is its rank
2. Count matrix - scipy CSR (vocab_size, N) of raw occurrence counts
3. Weight matrices - one CSR per weighting variant, same shape
4. Order cache - flat arena of (scan, position) sorted by (term, scan, position)
   with a term offset table, so every occurrence of a term in a scan is a
   contiguous slice

Weighting variants (Salton & Buckley 1988):
    standard:         (count / scan_length) * idf
    sublinear:        (1 + log(count)) * idf
    length_smoothed:  (alpha + (1 - alpha) * count / max_count_in_scan) * idf
with idf = log(N / df).
=============================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

import numpy as np
from scipy.sparse import coo_matrix, csr_matrix

from gefp.config import DEFAULT_ALPHA, Weighting

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

    from gefp.corpus import ScanSignature

logger = logging.getLogger(__name__)


# =============================================================================
# Weighting Primitives
# =============================================================================


class WeightingPrimitives:
    """Vectorized IDF and term-weight formulas."""

    @staticmethod
    def idf(df: NDArray[np.float64], N: int) -> NDArray[np.float64]:
        """log(N / df); words present in every scan carry no information (0)."""
        df = np.asarray(df, dtype=np.float64)
        with np.errstate(divide="ignore"):
            idf = np.log(N / np.maximum(df, 1.0))
        return np.maximum(idf, 0.0)

    @staticmethod
    def standard(
        counts: NDArray[np.float64], totals: NDArray[np.float64], idf: NDArray[np.float64]
    ) -> NDArray[np.float64]:
        return counts / totals * idf

    @staticmethod
    def sublinear(counts: NDArray[np.float64], idf: NDArray[np.float64]) -> NDArray[np.float64]:
        # log(1) == 0.0 exactly, so a single occurrence weighs exactly idf
        return (1.0 + np.log(counts)) * idf

    @staticmethod
    def length_smoothed(
        counts: NDArray[np.float64],
        max_counts: NDArray[np.float64],
        idf: NDArray[np.float64],
        alpha: float,
    ) -> NDArray[np.float64]:
        return (alpha + (1.0 - alpha) * counts / max_counts) * idf

    @classmethod
    def weigh(
        cls,
        weighting: Weighting,
        counts: NDArray[np.float64],
        totals: NDArray[np.float64],
        max_counts: NDArray[np.float64],
        idf: NDArray[np.float64],
        alpha: float,
    ) -> NDArray[np.float64]:
        if weighting is Weighting.STANDARD:
            return cls.standard(counts, totals, idf)
        if weighting is Weighting.SUBLINEAR:
            return cls.sublinear(counts, idf)
        return cls.length_smoothed(counts, max_counts, idf, alpha)


@dataclass(frozen=True, slots=True)
class TermStatistics:
    """Corpus statistics of one word and its per-scan weights."""

    word: int
    document_count: int
    corpus_size: int
    idf: float
    scans: NDArray[np.int64]
    counts: NDArray[np.int64]
    standard: NDArray[np.float64]
    sublinear: NDArray[np.float64]
    length_smoothed: NDArray[np.float64]


class TermIndex:
    """
    Read-only index built once from a closed list of scan signatures.

    Use :meth:`build`; the constructor only stores precomputed arrays.
    """

    def __init__(
        self,
        vocabulary: NDArray[np.int64],
        counts: csr_matrix,
        weight_matrices: dict[Weighting, csr_matrix],
        idf: NDArray[np.float64],
        scan_lengths: NDArray[np.int64],
        max_counts: NDArray[np.int64],
        order_ptr: NDArray[np.int64],
        order_scans: NDArray[np.int64],
        order_positions: NDArray[np.int64],
        weighting: Weighting,
        alpha: float,
    ):
        self.vocabulary = vocabulary
        self.counts = counts
        self.weight_matrices = weight_matrices
        self.idf_array = idf
        self.scan_lengths = scan_lengths
        self.max_counts = max_counts
        self._order_ptr = order_ptr
        self._order_scans = order_scans
        self._order_positions = order_positions
        self.weighting = weighting
        self.alpha = alpha

        self.N = counts.shape[1]
        self.vocab_size = len(vocabulary)
        self.document_frequency = np.diff(counts.indptr).astype(np.int64)
        self.collection_frequency = np.asarray(counts.sum(axis=1)).ravel().astype(np.int64)
        self.total_occurrences = int(scan_lengths.sum())
        self.weights = weight_matrices[weighting]
        self.norm_array = np.sqrt(np.asarray(self.weights.multiply(self.weights).sum(axis=0)).ravel())

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def build(
        cls,
        signatures: Sequence[ScanSignature],
        weighting: Weighting = Weighting.STANDARD,
        alpha: float = DEFAULT_ALPHA,
    ) -> TermIndex:
        """
        Index every occurrence of every scan in one pass and fill in the derived
        fields (terms, counts, weights, norm) of each signature.

        Args:
            signatures: Scans in corpus order; their position is the scan index.
            weighting: Active variant, used for norms and scoring.
            alpha: Smoothing coefficient of the length-smoothed variant.
        """
        weighting = Weighting(weighting)
        N = len(signatures)
        scan_lengths = np.array([len(s) for s in signatures], dtype=np.int64)
        total = int(scan_lengths.sum())

        if total:
            flat_words = np.concatenate([s.words for s in signatures])
        else:
            flat_words = np.array([], dtype=np.int64)
        flat_scans = np.repeat(np.arange(N, dtype=np.int64), scan_lengths)
        offsets = np.concatenate(([0], np.cumsum(scan_lengths)))[:-1].astype(np.int64)
        flat_positions = np.arange(total, dtype=np.int64) - np.repeat(offsets, scan_lengths)

        vocabulary, flat_terms = np.unique(flat_words, return_inverse=True)
        flat_terms = flat_terms.astype(np.int64).ravel()
        V = len(vocabulary)

        counts = coo_matrix(
            (np.ones(total, dtype=np.int64), (flat_terms, flat_scans)), shape=(V, N)
        ).tocsr()
        counts.sum_duplicates()
        counts.sort_indices()

        df = np.diff(counts.indptr)
        idf = WeightingPrimitives.idf(df, N)

        # Order cache: contiguous (scan, position) runs per term
        order = np.lexsort((flat_positions, flat_scans, flat_terms))
        order_ptr = np.concatenate(([0], np.cumsum(np.bincount(flat_terms, minlength=V)))).astype(np.int64)
        order_scans = flat_scans[order]
        order_positions = flat_positions[order]

        max_counts = np.zeros(N, dtype=np.int64)
        entries = counts.tocoo()
        rows, cols = entries.row.astype(np.int64), entries.col.astype(np.int64)
        data = entries.data.astype(np.float64)
        np.maximum.at(max_counts, cols, entries.data.astype(np.int64))

        totals = scan_lengths.astype(np.float64)
        variant_values = {
            variant: WeightingPrimitives.weigh(
                variant, data, totals[cols], max_counts[cols].astype(np.float64), idf[rows], alpha
            )
            for variant in Weighting
        }
        weight_matrices = {
            variant: csr_matrix((values, (rows, cols)), shape=(V, N))
            for variant, values in variant_values.items()
        }

        index = cls(
            vocabulary=vocabulary.astype(np.int64),
            counts=counts,
            weight_matrices=weight_matrices,
            idf=idf,
            scan_lengths=scan_lengths,
            max_counts=max_counts,
            order_ptr=order_ptr,
            order_scans=order_scans,
            order_positions=order_positions,
            weighting=weighting,
            alpha=alpha,
        )
        index._attach(signatures, rows, cols, data, variant_values[weighting])

        logger.info(
            "Indexed %d scans: %d distinct words, %d occurrences, weighting=%s",
            N,
            V,
            total,
            weighting.value,
        )
        return index

    def _attach(
        self,
        signatures: Sequence[ScanSignature],
        rows: NDArray[np.int64],
        cols: NDArray[np.int64],
        counts: NDArray[np.float64],
        active: NDArray[np.float64],
    ) -> None:
        """Write per-scan derived fields, one entry per distinct word, terms ascending."""
        order = np.lexsort((rows, cols))
        rows, cols, counts, active = rows[order], cols[order], counts[order], active[order]
        bounds = np.searchsorted(cols, np.arange(self.N + 1))
        for j, signature in enumerate(signatures):
            sl = slice(bounds[j], bounds[j + 1])
            total = float(self.scan_lengths[j])
            signature.terms = self.vocabulary[rows[sl]]
            signature.counts = counts[sl].astype(np.int64)
            signature.term_frequency = counts[sl] / total if total else counts[sl]
            signature.weights = active[sl]
            signature.total_weight = total
            signature.norm = float(self.norm_array[j])

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def lookup(self, words: ArrayLike) -> NDArray[np.int64]:
        """Map word ids to term ids; unknown words map to -1."""
        words = np.asarray(words, dtype=np.int64).ravel()
        if self.vocab_size == 0:
            return np.full(len(words), -1, dtype=np.int64)
        idx = np.searchsorted(self.vocabulary, words)
        clipped = np.minimum(idx, self.vocab_size - 1)
        known = (idx < self.vocab_size) & (self.vocabulary[clipped] == words)
        return np.where(known, idx, -1).astype(np.int64)

    def query_weights(self, words: ArrayLike) -> tuple[NDArray[np.int64], NDArray[np.float64]]:
        """
        Weight a query with the active variant, computed from the query's own counts.

        Returns:
            (term_ids, weights) for the distinct known words, term ids ascending.
        """
        words = np.asarray(words, dtype=np.int64).ravel()
        if len(words) == 0:
            return np.array([], dtype=np.int64), np.array([], dtype=np.float64)

        unique_words, word_counts = np.unique(words, return_counts=True)
        term_ids = self.lookup(unique_words)
        known = term_ids >= 0
        if not known.any():
            return np.array([], dtype=np.int64), np.array([], dtype=np.float64)
        # unknown words do not count towards the query length or its max count
        term_ids = term_ids[known]
        counts = word_counts[known].astype(np.float64)
        n = np.full(len(counts), counts.sum())
        max_count = np.full(len(counts), counts.max())
        weights = WeightingPrimitives.weigh(
            self.weighting, counts, n, max_count, self.idf_array[term_ids], self.alpha
        )
        return term_ids, weights

    def mean_frequency(self, term_ids: ArrayLike) -> float:
        """Average corpus-wide relative frequency of ``term_ids``."""
        term_ids = np.asarray(term_ids, dtype=np.int64)
        if len(term_ids) == 0 or self.total_occurrences == 0:
            return 0.0
        return float(self.collection_frequency[term_ids].mean() / self.total_occurrences)

    def posting_list(self, term_id: int) -> NDArray[np.int64]:
        """Scans containing ``term_id``, ascending."""
        start, end = self.counts.indptr[term_id], self.counts.indptr[term_id + 1]
        return self.counts.indices[start:end].astype(np.int64)

    def candidates(self, term_ids: ArrayLike) -> NDArray[np.int64]:
        """Union of the posting lists of ``term_ids``."""
        term_ids = np.asarray(term_ids, dtype=np.int64)
        if len(term_ids) == 0:
            return np.array([], dtype=np.int64)
        return np.unique(self.counts[term_ids, :].indices).astype(np.int64)

    def order_positions(self, term_id: int, scan: int) -> NDArray[np.int64]:
        """Sequence indices of ``term_id`` inside ``scan`` (order cache entry)."""
        start, end = self._order_ptr[term_id], self._order_ptr[term_id + 1]
        scans = self._order_scans[start:end]
        lo = np.searchsorted(scans, scan, side="left")
        hi = np.searchsorted(scans, scan, side="right")
        return self._order_positions[start + lo : start + hi]

    def gather_occurrences(
        self, term_ids: ArrayLike
    ) -> tuple[NDArray[np.int64], NDArray[np.int64], NDArray[np.int64]]:
        """
        All order-cache entries for ``term_ids``, sorted by (scan, position).

        Returns:
            (scans, positions, term_ids) aligned arrays.
        """
        term_ids = np.asarray(term_ids, dtype=np.int64)
        if len(term_ids) == 0:
            empty = np.array([], dtype=np.int64)
            return empty, empty, empty
        starts = self._order_ptr[term_ids]
        lengths = self._order_ptr[term_ids + 1] - starts
        idx = np.repeat(starts - np.concatenate(([0], np.cumsum(lengths)[:-1])), lengths)
        idx = idx + np.arange(int(lengths.sum()), dtype=np.int64)
        scans = self._order_scans[idx]
        positions = self._order_positions[idx]
        terms = np.repeat(term_ids, lengths)
        order = np.lexsort((positions, scans))
        return scans[order], positions[order], terms[order]

    def term_statistics(self, word: int) -> TermStatistics | None:
        """Statistics for a word id, or None if the corpus never contains it."""
        term_id = int(self.lookup([word])[0])
        if term_id < 0:
            return None
        scans = self.posting_list(term_id)
        counts = np.asarray(self.counts[term_id, :].toarray()).ravel()[scans]

        def row(variant: Weighting) -> NDArray[np.float64]:
            return np.asarray(self.weight_matrices[variant][term_id, :].toarray()).ravel()[scans]

        return TermStatistics(
            word=int(word),
            document_count=int(self.document_frequency[term_id]),
            corpus_size=self.N,
            idf=float(self.idf_array[term_id]),
            scans=scans,
            counts=counts.astype(np.int64),
            standard=row(Weighting.STANDARD),
            sublinear=row(Weighting.SUBLINEAR),
            length_smoothed=row(Weighting.LENGTH_SMOOTHED),
        )
