"""GeFP: place recognition over 2D range scans with geometrical FLIRT phrases."""

from gefp.binomial import BinomialCache, get_binomial_cache
from gefp.config import EngineConfig, MatchMode, Representation, Weighting
from gefp.corpus import ScanCorpus, ScanSignature
from gefp.engine import EvaluationRecord, GefpEngine
from gefp.errors import (
    EmptyCorpus,
    GefpError,
    IndexAlreadyBuilt,
    IndexNotBuilt,
    InvalidConfig,
    ScanFileError,
    ShapeMismatch,
)
from gefp.tfidf import TermIndex, TermStatistics
from gefp.topk import ScoreEntry, TopK

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "BinomialCache",
    "EmptyCorpus",
    "EngineConfig",
    "EvaluationRecord",
    "GefpEngine",
    "GefpError",
    "IndexAlreadyBuilt",
    "IndexNotBuilt",
    "InvalidConfig",
    "MatchMode",
    "Representation",
    "ScanCorpus",
    "ScanFileError",
    "ScanSignature",
    "ScoreEntry",
    "ShapeMismatch",
    "TermIndex",
    "TermStatistics",
    "TopK",
    "Weighting",
    "get_binomial_cache",
]
