from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

import numpy as np

if TYPE_CHECKING:
    from gefp.engine import EvaluationRecord


def reciprocal_rank(relevant: int, retrieved: np.ndarray) -> float:
    """
    Computes Reciprocal Rank (RR) of a single relevant scan.

    Args:
        relevant: Index of the scan that should be retrieved.
        retrieved: 1D array of ranked scan indices.

    Returns:
        1 / rank of ``relevant`` (0.0 if it was not retrieved).
    """
    hits = np.flatnonzero(np.asarray(retrieved) == relevant)
    return 1.0 / (hits[0] + 1) if hits.size else 0.0


def self_retrieval(records: Sequence[EvaluationRecord]) -> tuple[float, float]:
    """
    In an all-vs-all run every scan is in the corpus, so it should be its own best match.

    Returns:
        (precision@1, mean reciprocal rank) of the query scan in its own results.
    """
    if not records:
        return 0.0, 0.0
    rr = []
    for record in records:
        retrieved = np.array([entry.scan_index for entry in record.results], dtype=np.int64)
        rr.append(reciprocal_rank(record.query_index, retrieved))
    rr_array = np.array(rr)
    return float(np.mean(rr_array == 1.0)), float(np.mean(rr_array))


def summarize(records: Sequence[EvaluationRecord]) -> dict[str, float]:
    """Self-retrieval quality, result counts and latency of an evaluation run."""
    if not records:
        return {"queries": 0}
    precision_at_1, mrr = self_retrieval(records)
    latencies = np.array([r.elapsed for r in records], dtype=np.float64)
    return {
        "queries": len(records),
        "self_precision_at_1": precision_at_1,
        "self_mrr": mrr,
        "mean_results": float(np.mean([len(r.results) for r in records])),
        "mean_latency": float(latencies.mean()),
        "p95_latency": float(np.percentile(latencies, 95)),
        "total_latency": float(latencies.sum()),
    }
