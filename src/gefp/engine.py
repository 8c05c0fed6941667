"""
Geometrical FLIRT Phrases (GFP) retrieval engine.

Owns the corpus, the term index and the scorers:

    engine = GefpEngine(EngineConfig(kernel_size=10, kbest=5))
    for words, xs, ys in scans:
        engine.insert(words, xs, ys)
    engine.prepare()
    best = engine.query(MatchMode.GEOMETRIC_PHRASES, words, xs, ys)

Reference: G. D. Tipaldi, L. Spinello, W. Burgard, "Geometrical FLIRT Phrases
for Large Scale Place Recognition in 2D Range Data", ICRA 2013.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import numpy as np
from tqdm import tqdm

from gefp.binomial import get_binomial_cache
from gefp.bow import BagOfWordsScorer
from gefp.config import EngineConfig, MatchMode, Representation
from gefp.corpus import ScanCorpus, ScanSignature
from gefp.distances import reformulate
from gefp.errors import EmptyCorpus, IndexAlreadyBuilt, IndexNotBuilt, ShapeMismatch
from gefp.phrases import GeometricPhraseScorer
from gefp.reader import read_wordscan_file
from gefp.tfidf import TermIndex

if TYPE_CHECKING:
    from pathlib import Path

    from numpy.typing import ArrayLike

    from gefp.topk import ScoreEntry

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

# Number of workers for parallel query processing
DEFAULT_NUM_WORKERS = 32

# Minimum queries before enabling parallelism
MIN_QUERIES_FOR_PARALLEL = 10


@dataclass(frozen=True, slots=True)
class EvaluationRecord:
    query_index: int
    results: list[ScoreEntry]
    elapsed: float


class ResultWriter(Protocol):
    def write(self, record: EvaluationRecord) -> None: ...


class GefpEngine:
    """
    Scan retrieval with bag-of-words or geometrical phrase scoring.

    Insert every scan, call :meth:`prepare` once, then query. Queries do not
    mutate the engine and may run concurrently.

    Args:
        config: Engine parameters (defaults if None).
    """

    def __init__(self, config: EngineConfig | None = None):
        self.config = config or EngineConfig()
        self.corpus = ScanCorpus()
        self.index: TermIndex | None = None
        self._signatures: list[ScanSignature] = []
        self._bow: BagOfWordsScorer | None = None
        self._gfp: GeometricPhraseScorer | None = None

    def __len__(self) -> int:
        return len(self.corpus)

    @property
    def is_prepared(self) -> bool:
        return self.index is not None

    @property
    def signatures(self) -> list[ScanSignature]:
        """Indexed signatures (distance tokens in bag-of-distances mode)."""
        if self.index is None:
            raise IndexNotBuilt("call prepare() first")
        return self._signatures

    def insert(self, words: ArrayLike, x_positions: ArrayLike, y_positions: ArrayLike) -> int:
        """Add a scan; returns its corpus index."""
        return self.corpus.insert(words, x_positions, y_positions)

    def read_wordscan_file(self, path: str | Path) -> int:
        """Insert every scan of a word-scan file; returns the number read."""
        n = 0
        for words, xs, ys in read_wordscan_file(path):
            self.insert(words, xs, ys)
            n += 1
        logger.info("Read %d scans from %s", n, path)
        return n

    def prepare(self) -> None:
        """
        Close the corpus and build everything queries need.

        Optionally rewrites scans into bag-of-distances, builds the TF-IDF index,
        order cache and norms, and primes the binomial cache.
        """
        if self.index is not None:
            raise IndexAlreadyBuilt("prepare() already ran")
        if len(self.corpus) == 0:
            raise EmptyCorpus("insert at least one scan before prepare()")

        start = time.perf_counter()
        cfg = self.config
        scans = list(self.corpus)
        if cfg.representation is Representation.DISTANCES:
            scans = [
                reformulate(s, cfg.distance_start, cfg.distance_interval, cfg.distance_end)
                for s in scans
            ]

        index = TermIndex.build(scans, cfg.weighting, cfg.alpha)
        binomial = get_binomial_cache(cfg.binomial_ceiling)
        # a failed build leaves the corpus open for inserts
        self.corpus.close()

        self._signatures = scans
        self._bow = BagOfWordsScorer(index, cfg.kbest)
        self._gfp = GeometricPhraseScorer(index, binomial, cfg.kernel_size, cfg.kbest, cfg.significance)
        self.index = index
        logger.info(
            "Prepared %d scans (%s, %s) in %.3fs",
            len(scans),
            cfg.representation.value,
            cfg.weighting.value,
            time.perf_counter() - start,
        )

    def _query_words(
        self,
        words: ArrayLike,
        x_positions: ArrayLike | None,
        y_positions: ArrayLike | None,
    ) -> np.ndarray:
        words = np.asarray(words, dtype=np.int64).ravel()
        if self.config.representation is Representation.WORDS:
            return words
        if x_positions is None or y_positions is None:
            raise ShapeMismatch("bag-of-distances queries need word positions")
        cfg = self.config
        signature = ScanSignature.from_sequences(words, x_positions, y_positions)
        return reformulate(signature, cfg.distance_start, cfg.distance_interval, cfg.distance_end).words

    def _rank(self, mode: MatchMode, words: np.ndarray) -> list[ScoreEntry]:
        if mode is MatchMode.BAG_OF_WORDS:
            return self._bow.score(words)
        return self._gfp.score(words)

    def query(
        self,
        mode: MatchMode | str | int,
        words: ArrayLike,
        x_positions: ArrayLike | None = None,
        y_positions: ArrayLike | None = None,
    ) -> list[ScoreEntry]:
        """
        Rank the corpus against one query scan.

        Args:
            mode: Bag-of-words (1, "bow") or geometrical phrases (2, "gfp").
            words: Query word ids in scan order.
            x_positions, y_positions: Word positions; required in bag-of-distances mode.

        Returns:
            Up to ``kbest`` entries, best first.
        """
        if self.index is None:
            raise IndexNotBuilt("call prepare() before querying")
        mode = MatchMode.parse(mode)
        return self._rank(mode, self._query_words(words, x_positions, y_positions))

    def run_evaluation(
        self,
        mode: MatchMode | str | int,
        writer: ResultWriter | None = None,
        num_workers: int = DEFAULT_NUM_WORKERS,
        show_progress: bool = False,
    ) -> list[EvaluationRecord]:
        """
        Query every corpus scan against the whole corpus (all vs all).

        Queries run on a thread pool for large corpora; records are written in
        corpus order once all queries finished.

        Args:
            mode: Scoring method.
            writer: Optional sink receiving one record per query.
            num_workers: Thread pool size.
            show_progress: Show a tqdm progress bar.
        """
        if self.index is None:
            raise IndexNotBuilt("call prepare() before run_evaluation()")
        mode = MatchMode.parse(mode)

        def run_single(query_index: int) -> EvaluationRecord:
            start = time.perf_counter()
            results = self._rank(mode, self._signatures[query_index].words)
            elapsed = time.perf_counter() - start
            logger.debug("Query %d: %d results in %.6fs", query_index, len(results), elapsed)
            return EvaluationRecord(query_index, results, elapsed)

        queries = range(len(self._signatures))
        total_start = time.perf_counter()
        if len(queries) < MIN_QUERIES_FOR_PARALLEL or num_workers <= 1:
            records = [run_single(q) for q in tqdm(queries, disable=not show_progress, desc=mode.value)]
        else:
            with ThreadPoolExecutor(max_workers=num_workers) as executor:
                records = list(
                    tqdm(
                        executor.map(run_single, queries),
                        total=len(queries),
                        disable=not show_progress,
                        desc=mode.value,
                    )
                )

        if writer is not None:
            for record in records:
                writer.write(record)

        logger.info(
            "Evaluated %d queries (%s) in %.3fs",
            len(records),
            mode.value,
            time.perf_counter() - total_start,
        )
        return records
