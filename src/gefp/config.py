"""
Engine configuration.

All parameters are fixed when the engine is constructed and shared read-only by
every component. Defaults follow the reference GFP setup (bag-of-distances bins
0..15 m at 0.2 m, smoothing 0.4, binomial ceiling 10000).

Settings can also be taken from the environment:
    GEFP_KERNEL_SIZE=10            # phrase window size
    GEFP_KBEST=10                  # results kept per query
    GEFP_REPRESENTATION=words      # words or distances
    GEFP_WEIGHTING=standard        # standard, sublinear or length_smoothed
    GEFP_ALPHA=0.4
    GEFP_SIGNIFICANCE=0.05
    GEFP_BINOMIAL_CEILING=10000
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum

from gefp.errors import InvalidConfig


class MatchMode(str, Enum):
    """Scoring method used for a query."""

    BAG_OF_WORDS = "bow"
    GEOMETRIC_PHRASES = "gfp"

    @classmethod
    def parse(cls, value: MatchMode | str | int) -> MatchMode:
        """Accept an enum member, its value, or the numeric codes 1 (bow) / 2 (gfp)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            codes = {1: cls.BAG_OF_WORDS, 2: cls.GEOMETRIC_PHRASES}
            if value not in codes:
                raise InvalidConfig(f"unknown match mode code {value}")
            return codes[value]
        try:
            return cls(value)
        except ValueError:
            raise InvalidConfig(f"unknown match mode {value!r}") from None


class Representation(str, Enum):
    WORDS = "words"
    DISTANCES = "distances"


class Weighting(str, Enum):
    STANDARD = "standard"
    SUBLINEAR = "sublinear"
    LENGTH_SMOOTHED = "length_smoothed"


# =============================================================================
# Defaults
# =============================================================================

DEFAULT_KERNEL_SIZE = 10
DEFAULT_KBEST = 10
DEFAULT_ALPHA = 0.4
DEFAULT_DISTANCE_START = 0.0
DEFAULT_DISTANCE_INTERVAL = 0.2
DEFAULT_DISTANCE_END = 15.0
DEFAULT_BINOMIAL_CEILING = 10000
DEFAULT_SIGNIFICANCE = 0.05


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """
    Immutable engine parameters.

    Args:
        kernel_size: Window size (in sequence positions) for phrase verification.
        kbest: Number of results returned per query.
        representation: Index raw words or binned pairwise distances.
        weighting: TF-IDF flavour used for vectors and norms.
        alpha: Smoothing coefficient of the length-smoothed weighting.
        distance_start: Lower bound of the distance bins (inclusive).
        distance_interval: Bin width.
        distance_end: Upper bound of the distance bins (exclusive).
        binomial_ceiling: Largest n served by the binomial cache.
        significance: Chance probability above which a phrase match is weak.
    """

    kernel_size: int = DEFAULT_KERNEL_SIZE
    kbest: int = DEFAULT_KBEST
    representation: Representation = Representation.WORDS
    weighting: Weighting = Weighting.STANDARD
    alpha: float = DEFAULT_ALPHA
    distance_start: float = DEFAULT_DISTANCE_START
    distance_interval: float = DEFAULT_DISTANCE_INTERVAL
    distance_end: float = DEFAULT_DISTANCE_END
    binomial_ceiling: int = DEFAULT_BINOMIAL_CEILING
    significance: float = DEFAULT_SIGNIFICANCE

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "representation", Representation(self.representation))
            object.__setattr__(self, "weighting", Weighting(self.weighting))
        except ValueError as e:
            raise InvalidConfig(str(e)) from None

        if self.kernel_size < 1:
            raise InvalidConfig(f"kernel_size must be >= 1, got {self.kernel_size}")
        if self.kbest < 1:
            raise InvalidConfig(f"kbest must be >= 1, got {self.kbest}")
        if not 0.0 <= self.alpha <= 1.0:
            raise InvalidConfig(f"alpha must be in [0, 1], got {self.alpha}")
        if self.distance_interval <= 0:
            raise InvalidConfig(f"distance_interval must be > 0, got {self.distance_interval}")
        if self.distance_end <= self.distance_start:
            raise InvalidConfig("distance_end must be greater than distance_start")
        if self.binomial_ceiling < self.kernel_size:
            raise InvalidConfig(
                f"binomial_ceiling ({self.binomial_ceiling}) must cover kernel_size ({self.kernel_size})"
            )
        if not 0.0 < self.significance <= 1.0:
            raise InvalidConfig(f"significance must be in (0, 1], got {self.significance}")

    @classmethod
    def from_env(cls, **overrides) -> EngineConfig:
        """Build a config from ``GEFP_*`` environment variables, then apply overrides."""
        casts = {
            "kernel_size": int,
            "kbest": int,
            "representation": str,
            "weighting": str,
            "alpha": float,
            "significance": float,
            "binomial_ceiling": int,
        }
        values = {}
        for name, cast in casts.items():
            raw = os.environ.get(f"GEFP_{name.upper()}")
            if raw:
                try:
                    values[name] = cast(raw)
                except ValueError:
                    raise InvalidConfig(f"GEFP_{name.upper()}={raw!r} is not a valid {cast.__name__}") from None
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

