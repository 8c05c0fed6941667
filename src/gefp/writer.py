"""Persist k-best results, one JSON object per query."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

if TYPE_CHECKING:
    from gefp.engine import EvaluationRecord


def record_to_dict(record: EvaluationRecord) -> dict:
    return {
        "query": record.query_index,
        "elapsed": record.elapsed,
        "results": [list(entry.as_pair()) for entry in record.results],
    }


class JsonlResultWriter:
    """
    Writes ``{"query": i, "elapsed": s, "results": [[index, score], ...]}`` lines.

    Use as a context manager; the file is opened on enter.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._file = None
        self.count = 0

    def __enter__(self) -> JsonlResultWriter:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.path.open("w", encoding="utf-8")
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def write(self, record: EvaluationRecord) -> None:
        if self._file is None:
            raise RuntimeError("writer is not open; use it as a context manager")
        self._file.write(json.dumps(record_to_dict(record)) + "\n")
        self.count += 1

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None


def read_results(path: str | Path) -> Iterator[dict]:
    """Load records written by :class:`JsonlResultWriter`."""
    with Path(path).open(encoding="utf-8") as f:
        for line in f:
            if line.strip():
                yield json.loads(line)
