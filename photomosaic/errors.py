"""Error kinds raised while building a photomosaic.

Only the cache-related errors are recovered from locally (the cache
simply stops helping); everything else propagates to the caller.
"""

from __future__ import annotations


class PhotomosaicError(Exception):
    """Base class for every failure the CLI maps to exit status 1."""


class ImageDecodeError(PhotomosaicError):
    """A source or candidate image could not be read or resized."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"could not read image {path!r}: {reason}")
        self.path = path
        self.reason = reason


class ImageWriteError(PhotomosaicError):
    """The output image could not be encoded or written."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"could not write image {path!r}: {reason}")
        self.path = path
        self.reason = reason


class MatcherExhausted(PhotomosaicError):
    """No candidate produced a usable tile for a block."""


class CacheUnavailable(PhotomosaicError):
    """The average-colour cache file could not be opened or created."""


class CacheCompactionFailure(PhotomosaicError):
    """The cache file could not be rewritten at shutdown."""


class MalformedCacheLine(PhotomosaicError):
    """A line of the cache file does not look like ``path<TAB>rrggbb``."""

    def __init__(self, lineno: int, line: str) -> None:
        super().__init__(f"malformed cache line {lineno}: {line!r}")
        self.lineno = lineno
        self.line = line
