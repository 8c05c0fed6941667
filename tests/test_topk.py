import numpy as np
import pytest

from gefp import ScoreEntry, TopK
from gefp.topk import select_top_k


def test_push_orders_by_score_then_index():
    selector = TopK(3)
    for score, index in [(0.5, 3), (0.9, 1), (0.5, 2), (0.1, 0)]:
        selector.push(score, index)
    assert selector.results() == [ScoreEntry(0.9, 1), ScoreEntry(0.5, 2), ScoreEntry(0.5, 3)]


def test_tie_with_worst_entry_prefers_lower_index():
    selector = TopK(2)
    selector.push(1.0, 0)
    selector.push(0.5, 7)
    assert selector.push(0.5, 4)
    assert not selector.push(0.5, 9)
    assert [e.scan_index for e in selector.results()] == [0, 4]


@pytest.mark.parametrize("k", [1, 2, 5, 50])
def test_length_is_min_of_k_and_candidates(k):
    selector = TopK(k)
    selector.extend([0.3, 0.2, 0.8, 0.8, 0.1], [10, 11, 12, 13, 14])
    results = selector.results()
    assert len(results) == min(k, 5)
    scores = [e.score for e in results]
    assert scores == sorted(scores, reverse=True)


def test_select_top_k_keeps_ties_at_boundary():
    indices, scores = select_top_k([1.0, 1.0, 1.0, 0.5], [3, 1, 2, 0], 2)
    np.testing.assert_array_equal(indices, [1, 2])
    np.testing.assert_array_equal(scores, [1.0, 1.0])


def test_select_top_k_without_limit():
    indices, scores = select_top_k([0.2, 0.7, 0.2], [0, 1, 2], None)
    np.testing.assert_array_equal(indices, [1, 0, 2])
    np.testing.assert_array_equal(scores, [0.7, 0.2, 0.2])


def test_extend_in_batches_matches_full_sort():
    rng = np.random.default_rng(3)
    scores = np.round(rng.uniform(size=200), 1)
    indices = rng.permutation(200)

    selector = TopK(15)
    for start in range(0, 200, 37):
        selector.extend(scores[start : start + 37], indices[start : start + 37])

    expected = sorted(zip(scores.tolist(), indices.tolist()), key=lambda e: (-e[0], e[1]))[:15]
    assert [(e.score, e.scan_index) for e in selector.results()] == expected


def test_empty_batch():
    selector = TopK(3)
    selector.extend([], [])
    assert selector.results() == []


def test_invalid_k():
    with pytest.raises(ValueError):
        TopK(0)
