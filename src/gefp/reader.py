"""
Word-scan file reader.

One scan per line:

    n  w_1 x_1 y_1  w_2 x_2 y_2  ...  w_n x_n y_n

Tokens may be separated by spaces, tabs, commas or semicolons. Blank lines and
lines starting with ``#`` are skipped.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterator

import numpy as np

from gefp.errors import ScanFileError

DEFAULT_DELIMITERS = " \t,;"


def tokenize(line: str, delimiters: str = DEFAULT_DELIMITERS) -> list[str]:
    """Split ``line`` on any of ``delimiters``, dropping empty tokens."""
    pattern = "[" + re.escape(delimiters) + "]+"
    return [token for token in re.split(pattern, line.strip()) if token]


def parse_scan_line(
    line: str,
    path: str | Path = "<string>",
    line_number: int = 0,
    delimiters: str = DEFAULT_DELIMITERS,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Parse one scan line into (word ids, x positions, y positions)."""
    tokens = tokenize(line, delimiters)
    if not tokens:
        raise ScanFileError(path, line_number, "empty scan line")
    try:
        n = int(tokens[0])
    except ValueError:
        raise ScanFileError(path, line_number, f"bad word count {tokens[0]!r}") from None
    if n < 0 or len(tokens) != 1 + 3 * n:
        raise ScanFileError(
            path, line_number, f"expected {n} (word, x, y) triples, got {len(tokens) - 1} tokens"
        )

    triples = tokens[1:]
    try:
        words = np.array([int(t) for t in triples[0::3]], dtype=np.int64)
        xs = np.array([float(t) for t in triples[1::3]], dtype=np.float64)
        ys = np.array([float(t) for t in triples[2::3]], dtype=np.float64)
    except ValueError as e:
        raise ScanFileError(path, line_number, str(e)) from None
    if n and words.min() < 0:
        raise ScanFileError(path, line_number, "word ids must be non-negative")
    return words, xs, ys


def read_wordscan_file(
    path: str | Path,
    delimiters: str = DEFAULT_DELIMITERS,
) -> Iterator[tuple[np.ndarray, np.ndarray, np.ndarray]]:
    """Yield (word ids, x positions, y positions) for every scan in ``path``."""
    path = Path(path)
    with path.open(encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            yield parse_scan_line(stripped, path, line_number, delimiters)
