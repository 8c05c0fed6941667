"""
Geometrical phrase scoring: bag-of-words plus order-consistency verification.

=============================================================================
ALGORITHM (per candidate scan of length L):
=============================================================================

1. M = ascending positions of the candidate that hold a query word, read from
   the order cache. Each query word also has a rank: the index of its first
   occurrence in the query sequence (n_q words long).
2. A scan is a closed sequence (the sensor sweeps a full circle), so windows
   wrap: for each i the window covers [M[i], M[i] + W) modulo L, with
   W = min(kernel_size, L). Its matched count is m, its bounds are M[i] and the
   last matched position inside it, span = max - min + 1.
3. Order agreement of a window: consecutive matches agree when the query rank
   steps forward circularly by d with 0 < d <= n_q / 2. agreement = agreeing
   pairs / (m - 1), or 1 for a single match.
4. Best window: most matches, then largest IDF mass of the distinct query words
   it holds, then highest agreement, then the tightest span. All of these are
   invariant to rotating the candidate, so the score is too.
5. Chance model: the first match anchors the window and is not evidence by
   itself. Each of the other W - 1 slots holds a given query word by chance
   with p = mean corpus frequency of the query words, independently, so the
   remaining count is Binomial(W - 1, p). If P[X >= m - 1] exceeds the
   significance level the candidate is a weak match and is dropped. A lone
   shared word therefore never passes.
6. Score = cosine + (window IDF mass / query IDF mass) * (m / span) * agreement.
=============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from gefp.bow import accumulate
from gefp.config import DEFAULT_SIGNIFICANCE
from gefp.topk import ScoreEntry, TopK

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

    from gefp.binomial import BinomialCache
    from gefp.tfidf import TermIndex


@dataclass(frozen=True, slots=True)
class PhraseWindow:
    """Best circular window of one candidate and its significance."""

    min_index: int
    max_index: int
    matches: int
    span: int
    length: int
    idf_mass: float
    agreement: float
    p_value: float


@dataclass(frozen=True, slots=True)
class PhraseMatch:
    """Verification outcome of one bag-of-words candidate."""

    scan_index: int
    cosine: float
    window: PhraseWindow
    weak: bool
    score: float


def query_ranks(term_of_word: NDArray[np.int64]) -> tuple[NDArray[np.int64], NDArray[np.int64]]:
    """
    First query index of every distinct known term.

    Args:
        term_of_word: Term id per query position (-1 for unknown words).

    Returns:
        (term_ids ascending, rank per term)
    """
    term_ids, first = np.unique(term_of_word, return_index=True)
    known = term_ids >= 0
    return term_ids[known], first[known].astype(np.int64)


def order_agreement(ranks: NDArray[np.int64], query_length: int) -> float:
    """Fraction of consecutive matches whose query rank steps forward circularly."""
    if len(ranks) < 2:
        return 1.0
    steps = np.diff(ranks) % query_length
    agreeing = (steps > 0) & (2 * steps <= query_length)
    return float(agreeing.sum()) / (len(ranks) - 1)


class GeometricPhraseScorer:
    """
    Args:
        index: Built term index (with order cache).
        binomial: Binomial cache covering ``kernel_size``.
        kernel_size: Window size in sequence positions.
        kbest: Results returned per query.
        significance: Largest chance probability still accepted.
    """

    def __init__(
        self,
        index: TermIndex,
        binomial: BinomialCache,
        kernel_size: int,
        kbest: int,
        significance: float = DEFAULT_SIGNIFICANCE,
    ):
        if kernel_size > binomial.ceiling:
            raise ValueError(f"kernel_size {kernel_size} exceeds binomial cache ceiling {binomial.ceiling}")
        self.index = index
        self.binomial = binomial
        self.kernel_size = kernel_size
        self.kbest = kbest
        self.significance = significance

    def best_window(
        self,
        positions: NDArray[np.int64],
        terms: NDArray[np.int64],
        ranks: NDArray[np.int64],
        length: int,
        query_length: int,
        chance: float,
    ) -> PhraseWindow:
        """
        Best circular window over the matched ``positions`` of a scan of ``length``.

        Args:
            positions: Ascending candidate positions holding a query word.
            terms: Term id at each of those positions.
            ranks: Query rank of each of those terms.
            length: Candidate scan length.
            query_length: Number of query positions.
            chance: Probability that one slot holds a given query word by chance.
        """
        W = min(self.kernel_size, length)
        n = len(positions)
        wrapped = np.concatenate((positions, positions + length))
        wrapped_terms = np.concatenate((terms, terms))
        wrapped_ranks = np.concatenate((ranks, ranks))

        ends = np.searchsorted(wrapped, positions + W, side="left")
        matches = ends - np.arange(n)
        spans = wrapped[ends - 1] - positions + 1

        best_matches = int(matches.max())
        best_key: tuple[float, float, int] | None = None
        best_i = 0
        for i in np.flatnonzero(matches == best_matches):
            window_terms = np.unique(wrapped_terms[i : ends[i]])
            key = (
                float(self.index.idf_array[window_terms].sum()),
                order_agreement(wrapped_ranks[i : ends[i]], query_length),
                -int(spans[i]),
            )
            if best_key is None or key > best_key:
                best_key, best_i = key, int(i)

        return PhraseWindow(
            min_index=int(positions[best_i]),
            max_index=int(wrapped[ends[best_i] - 1] % length),
            matches=best_matches,
            span=int(spans[best_i]),
            length=W,
            idf_mass=best_key[0],
            agreement=best_key[1],
            # the anchoring match is given, only the other W - 1 slots are tested
            p_value=self.binomial.upper_tail(W - 1, best_matches - 1, chance),
        )

    def match(self, query_words: ArrayLike) -> list[PhraseMatch]:
        """Verify every bag-of-words candidate; weak matches are flagged, not removed."""
        query_words = np.asarray(query_words, dtype=np.int64).ravel()
        acc = accumulate(self.index, query_words)
        if len(acc.candidates) == 0:
            return []

        rank_terms, rank_values = query_ranks(self.index.lookup(query_words))
        query_mass = float(self.index.idf_array[acc.term_ids].sum())
        chance = self.index.mean_frequency(acc.term_ids)
        scans, positions, terms = self.index.gather_occurrences(acc.term_ids)
        ranks = rank_values[np.searchsorted(rank_terms, terms)]
        bounds = np.searchsorted(scans, np.append(acc.candidates, self.index.N), side="left")

        results = []
        for k, scan in enumerate(acc.candidates.tolist()):
            sl = slice(bounds[k], bounds[k + 1])
            window = self.best_window(
                positions[sl],
                terms[sl],
                ranks[sl],
                int(self.index.scan_lengths[scan]),
                len(query_words),
                chance,
            )
            weak = window.p_value > self.significance
            coverage = window.idf_mass / query_mass if query_mass > 0 else 0.0
            cosine = float(acc.cosine[k])
            score = cosine + coverage * window.matches / window.span * window.agreement
            results.append(PhraseMatch(scan, cosine, window, weak, score))
        return results

    def score(self, query_words: ArrayLike) -> list[ScoreEntry]:
        accepted = [m for m in self.match(query_words) if not m.weak]
        selector = TopK(self.kbest)
        selector.extend([m.score for m in accepted], [m.scan_index for m in accepted])
        return selector.results()
