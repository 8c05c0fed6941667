"""Error types raised by the retrieval engine."""


class GefpError(Exception):
    """Base error for all gefp failures."""


class ShapeMismatch(GefpError, ValueError):
    """Parallel word/position sequences have different lengths."""


class IndexAlreadyBuilt(GefpError):
    """The index was already built; the corpus is closed."""


class IndexNotBuilt(GefpError):
    """A query was issued before ``prepare()``."""


class EmptyCorpus(GefpError):
    """``prepare()`` was called on a corpus without scans."""


class InvalidConfig(GefpError, ValueError):
    """An engine configuration value is out of range."""


class ScanFileError(GefpError):
    """A scan file line could not be parsed."""

    def __init__(self, path, line_number: int, message: str):
        self.path = path
        self.line_number = line_number
        super().__init__(f"{path}:{line_number}: {message}")
