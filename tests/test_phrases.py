import numpy as np
import pytest

from gefp import MatchMode
from gefp.phrases import order_agreement, query_ranks


def _by_scan(matches):
    return {m.scan_index: m for m in matches}


class TestExampleCorpus:
    """[5,12,5,30] and [12,5,30,5] are rotations of one circular sequence."""

    @pytest.fixture
    def engine(self, build_engine, example_scans):
        return build_engine(example_scans, kernel_size=4)

    def test_neither_scan_is_weak(self, engine):
        matches = _by_scan(engine._gfp.match([5, 12, 30]))
        assert set(matches) == {0, 1}
        for match in matches.values():
            assert not match.weak
            assert match.window.matches == 4
            assert match.window.span == 4
            assert match.window.length == 4
            # anchored at one match, 3 more slots each holding a query word with p = 8/33
            assert match.window.p_value == pytest.approx((8 / 33) ** 3)
            assert match.window.agreement == pytest.approx(2 / 3)

    def test_rotated_scan_scores_at_least_as_high(self, engine):
        results = engine.query(MatchMode.GEOMETRIC_PHRASES, [5, 12, 30])
        scores = {e.scan_index: e.score for e in results}
        assert set(scores) == {0, 1}
        assert scores[1] >= scores[0] - 1e-12
        assert scores[1] == pytest.approx(scores[0])

    def test_phrase_score_adds_to_cosine(self, engine):
        bow = {e.scan_index: e.score for e in engine.query(MatchMode.BAG_OF_WORDS, [5, 12, 30])}
        gfp = {e.scan_index: e.score for e in engine.query(MatchMode.GEOMETRIC_PHRASES, [5, 12, 30])}
        # coverage 1, density 1, the repeated 5 breaks one of three order steps
        for scan in (0, 1):
            assert gfp[scan] == pytest.approx(bow[scan] + 2 / 3)


def test_weak_match_is_excluded(build_engine):
    scans = [[1, 2, 3, 4], [1, 5, 6, 7], [8, 9, 10, 11]]
    engine = build_engine(scans, kernel_size=4)

    bow = engine.query(MatchMode.BAG_OF_WORDS, [1, 2, 3, 4])
    assert {e.scan_index for e in bow} == {0, 1}

    matches = _by_scan(engine._gfp.match([1, 2, 3, 4]))
    assert matches[1].weak
    assert matches[1].window.matches == 1
    assert matches[1].window.p_value == 1.0
    assert not matches[0].weak

    gfp = engine.query(MatchMode.GEOMETRIC_PHRASES, [1, 2, 3, 4])
    assert [e.scan_index for e in gfp] == [0]


def test_contiguous_subsequence_passes(build_engine):
    scans = [list(range(0, 10)), list(range(10, 20)), list(range(20, 30))]
    engine = build_engine(scans, kernel_size=4)
    query = [3, 4, 5, 6]

    match = _by_scan(engine._gfp.match(query))[0]
    assert not match.weak
    assert match.window.min_index == 3
    assert match.window.max_index == 6
    assert match.window.matches == 4
    assert match.score > match.cosine

    results = engine.query(MatchMode.GEOMETRIC_PHRASES, query)
    assert results[0].scan_index == 0


def test_window_wraps_around_scan_end(build_engine):
    scans = [[3, 4, 9, 9, 9, 9, 1, 2], list(range(20, 30))]
    engine = build_engine(scans, kernel_size=4)

    match = _by_scan(engine._gfp.match([1, 2, 3, 4]))[0]
    assert match.window.matches == 4
    assert match.window.min_index == 6
    assert match.window.max_index == 1
    assert match.window.span == 4
    assert not match.weak
    assert match.score == pytest.approx(match.cosine + 1.0)


def test_score_is_rotation_invariant(build_engine):
    base = [11, 12, 13, 14, 15, 16, 17, 18]
    scans = [base, list(np.roll(base, 3)), list(np.roll(base, 6)), list(range(40, 48))]
    engine = build_engine(scans, kernel_size=3)

    results = {e.scan_index: e.score for e in engine.query(MatchMode.GEOMETRIC_PHRASES, [12, 13, 14])}
    assert set(results) == {0, 1, 2}
    assert results[1] == pytest.approx(results[0])
    assert results[2] == pytest.approx(results[0])


def test_scattered_matches_score_below_tight_ones(build_engine):
    tight = [1, 2, 3, 20, 21, 22, 23, 24, 25, 26]
    loose = [1, 27, 2, 28, 3, 29, 30, 31, 32, 33]
    engine = build_engine([tight, loose, list(range(50, 60))], kernel_size=5)

    matches = _by_scan(engine._gfp.match([1, 2, 3]))
    assert matches[0].window.span == 3
    assert matches[1].window.span == 5
    assert matches[0].score > matches[1].score


def test_kernel_larger_than_scan(build_engine, example_scans):
    engine = build_engine(example_scans, kernel_size=10)
    match = _by_scan(engine._gfp.match([7, 8]))[2]
    assert match.window.length == 3
    assert match.window.matches == 2


def test_unknown_query_words(build_engine, example_scans):
    engine = build_engine(example_scans, kernel_size=4)
    assert engine.query(MatchMode.GEOMETRIC_PHRASES, [404]) == []


def test_single_shared_word_with_long_query_is_weak(build_engine):
    scans = [list(range(10 * i, 10 * i + 10)) for i in range(30)]
    engine = build_engine(scans, kernel_size=10)
    query = [0] + list(range(100, 150))

    matches = _by_scan(engine._gfp.match(query))
    assert matches[0].window.matches == 1
    assert matches[0].weak
    assert not matches[10].weak

    results = engine.query(MatchMode.GEOMETRIC_PHRASES, query)
    assert 0 not in {e.scan_index for e in results}
    assert {e.scan_index for e in results} == {10, 11, 12, 13, 14}


def test_query_order_beats_shuffled_order(build_engine):
    scans = [[1, 2, 3, 4, 9, 9, 9, 9], [4, 2, 1, 3, 9, 9, 9, 9], list(range(20, 30))]
    engine = build_engine(scans, kernel_size=4)

    matches = _by_scan(engine._gfp.match([1, 2, 3, 4]))
    assert matches[0].window.agreement == 1.0
    assert matches[1].window.agreement < 1.0
    assert matches[0].cosine == pytest.approx(matches[1].cosine)

    scores = {e.scan_index: e.score for e in engine.query(MatchMode.GEOMETRIC_PHRASES, [1, 2, 3, 4])}
    assert scores[0] > scores[1]


def test_rotated_query_keeps_order_agreement(build_engine):
    scans = [[1, 2, 3, 4, 9, 9, 9, 9], list(range(20, 30))]
    engine = build_engine(scans, kernel_size=4)
    match = _by_scan(engine._gfp.match([3, 4, 1, 2]))[0]
    assert match.window.agreement == 1.0


@pytest.mark.parametrize(
    ("ranks", "query_length", "expected"),
    [
        ([0, 1, 2, 3], 4, 1.0),
        ([3, 0, 1], 4, 1.0),
        ([3, 1, 0, 2], 4, 2 / 3),
        ([2, 1, 0], 6, 0.0),
        ([5], 6, 1.0),
    ],
)
def test_order_agreement(ranks, query_length, expected):
    assert order_agreement(np.array(ranks), query_length) == pytest.approx(expected)


def test_query_ranks_use_first_occurrence():
    terms, ranks = query_ranks(np.array([4, -1, 2, 4, 0]))
    np.testing.assert_array_equal(terms, [0, 2, 4])
    np.testing.assert_array_equal(ranks, [4, 2, 0])
