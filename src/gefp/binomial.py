"""
Cached binomial coefficients for the phrase significance test.

The table stores log n! for every n up to the ceiling, so any C(n, k) with
0 <= k <= n <= ceiling is an O(1) lookup:

    log C(n, k) = log n! - log k! - log (n - k)!

Working in log space keeps coefficients such as C(10000, 5000), which overflow a
double, usable inside tail probabilities.
"""

from __future__ import annotations

import math
from functools import lru_cache

import numpy as np
from scipy.special import gammaln, logsumexp

from gefp.config import DEFAULT_BINOMIAL_CEILING


class BinomialCache:
    """
    Dense log-factorial lookup table up to ``ceiling``.

    Args:
        ceiling: Largest n that can be looked up.
    """

    def __init__(self, ceiling: int = DEFAULT_BINOMIAL_CEILING):
        if ceiling < 0:
            raise ValueError(f"ceiling must be >= 0, got {ceiling}")
        self.ceiling = ceiling
        log_factorials = gammaln(np.arange(ceiling + 1, dtype=np.float64) + 1.0)
        log_factorials.setflags(write=False)
        self._log_factorials = log_factorials

    def _check(self, n: int, k: int) -> None:
        if not 0 <= n <= self.ceiling:
            raise ValueError(f"n={n} outside cached range [0, {self.ceiling}]")
        if not 0 <= k <= n:
            raise ValueError(f"k={k} outside [0, n={n}]")

    def log_coefficient(self, n: int, k: int) -> float:
        self._check(n, k)
        lf = self._log_factorials
        return float(lf[n] - lf[k] - lf[n - k])

    def coefficient(self, n: int, k: int) -> int:
        """Exact C(n, k) for lookups inside the cached range."""
        self._check(n, k)
        return math.comb(n, k)

    def log_row(self, n: int) -> np.ndarray:
        """log C(n, k) for k = 0..n."""
        self._check(n, 0)
        lf = self._log_factorials
        k = np.arange(n + 1)
        return lf[n] - lf[k] - lf[n - k]

    def upper_tail(self, n: int, m: int, p: float) -> float:
        """
        P[X >= m] for X ~ Binomial(n, p).

        Args:
            n: Number of trials (must be within the cache).
            m: Observed successes.
            p: Success probability of a single trial.

        Returns:
            Tail probability in [0, 1].
        """
        if m <= 0:
            return 1.0
        if m > n:
            return 0.0
        if p <= 0.0:
            return 0.0
        if p >= 1.0:
            return 1.0
        k = np.arange(m, n + 1)
        log_terms = self.log_row(n)[m:] + k * math.log(p) + (n - k) * math.log1p(-p)
        return float(min(1.0, math.exp(logsumexp(log_terms))))


@lru_cache(maxsize=4)
def get_binomial_cache(ceiling: int = DEFAULT_BINOMIAL_CEILING) -> BinomialCache:
    """Process-wide cache instance, built once per ceiling."""
    return BinomialCache(ceiling)
