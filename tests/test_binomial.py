import math

import pytest

from gefp.binomial import BinomialCache, get_binomial_cache


@pytest.fixture(scope="module")
def cache():
    return BinomialCache(10000)


def test_coefficients_match_exact_values(cache):
    for n in range(41):
        for k in range(n + 1):
            assert cache.coefficient(n, k) == math.comb(n, k)


@pytest.mark.parametrize("n,k", [(10, 3), (60, 30), (1000, 17), (10000, 5000)])
def test_log_coefficient(cache, n, k):
    assert cache.log_coefficient(n, k) == pytest.approx(math.log(math.comb(n, k)), rel=1e-10)


@pytest.mark.parametrize("n,k", [(-1, 0), (10001, 3), (5, 6), (5, -1)])
def test_out_of_range_lookups(cache, n, k):
    with pytest.raises(ValueError):
        cache.coefficient(n, k)


def test_upper_tail_matches_direct_sum(cache):
    n, p = 10, 0.3
    for m in range(n + 1):
        expected = sum(math.comb(n, j) * p**j * (1 - p) ** (n - j) for j in range(m, n + 1))
        assert cache.upper_tail(n, m, p) == pytest.approx(expected, rel=1e-9)


def test_upper_tail_edges(cache):
    assert cache.upper_tail(4, 4, 0.2) == pytest.approx(0.2**4)
    assert cache.upper_tail(4, 0, 0.2) == 1.0
    assert cache.upper_tail(4, 5, 0.2) == 0.0
    assert cache.upper_tail(4, 2, 0.0) == 0.0
    assert cache.upper_tail(4, 2, 1.0) == 1.0


def test_upper_tail_decreases_with_matches(cache):
    tails = [cache.upper_tail(20, m, 0.1) for m in range(21)]
    assert all(a >= b for a, b in zip(tails, tails[1:]))


def test_shared_instance():
    assert get_binomial_cache(64) is get_binomial_cache(64)
    assert get_binomial_cache(64).ceiling == 64
