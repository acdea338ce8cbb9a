"""Persistent cache of candidate average colours.

The cache is a plain text file, one entry per line::

    /path/to/candidate.jpg<TAB>rrggbb

Entries are trusted only while the candidate file is no newer than the
cache file was when it was opened. A stale entry is *tombstoned*: it
stops answering lookups for the rest of the run and is dropped when the
file is rewritten by :meth:`AverageColorCache.close_and_compact`.
Everything else in the file is written back byte for byte, in order.

If the file cannot be opened the cache is disabled for the run: lookups
miss, stores are refused, and nothing is written back. A single warning
is logged. Concurrent runs against the same file are not supported.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from photomosaic.color_utils import RGB
from photomosaic.errors import (
    CacheCompactionFailure,
    CacheUnavailable,
    MalformedCacheLine,
)

logger = logging.getLogger(__name__)

# surrogateescape keeps non-UTF-8 path bytes intact across a rewrite;
# newline="\n" stops Python splitting or translating on "\r".
_FILE_OPTS = {"encoding": "utf-8", "errors": "surrogateescape", "newline": "\n"}


@dataclass
class CacheEntry:
    """One line of the cache file.

    ``line`` is the exact text that was read or will be written.
    ``loaded`` is True for lines read at open time; those are checked
    against the cache file's mtime. Entries stored during the run always
    hit; ``source_mtime``, the candidate's mtime when stored, is only
    consulted when the file is rewritten.
    """

    path: str
    color: RGB
    line: str
    loaded: bool = False
    tombstoned: bool = False
    source_mtime: float | None = None


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    stores: int = 0
    tombstones: int = 0
    malformed: int = 0


def format_line(path: str, color: RGB) -> str:
    return f"{path}\t{RGB(*color).to_hex()}\n"


def parse_line(lineno: int, line: str) -> tuple[str, RGB]:
    """Split a cache line into ``(path, colour)``.

    Raises:
        MalformedCacheLine: no tab, empty path, or a value that is not
            six hex digits.
    """
    body = line[:-1] if line.endswith("\n") else line
    key, sep, value = body.rpartition("\t")
    if not sep or not key:
        raise MalformedCacheLine(lineno, line)
    try:
        return key, RGB.from_hex(value)
    except ValueError as exc:
        raise MalformedCacheLine(lineno, line) from exc


class AverageColorCache:
    """Average colours keyed by candidate path, backed by a text file.

    Use :meth:`open` rather than the constructor::

        with AverageColorCache.open(path) as cache:
            color = cache.lookup(candidate)
            if color is None:
                cache.store(candidate, compute(candidate))
    """

    def __init__(
        self,
        path: str | Path,
        entries: list[CacheEntry] | None = None,
        mtime: float | None = None,
        enabled: bool = True,
    ) -> None:
        self.path = Path(path)
        self.stats = CacheStats()
        self._enabled = enabled
        self._mtime = mtime
        self._entries: list[CacheEntry] = []
        self._by_path: dict[str, list[CacheEntry]] = {}
        self._dirty = False
        self._closed = False
        for entry in entries or ():
            self._append(entry)

    # -- lifecycle ------------------------------------------------------

    @classmethod
    def open(cls, path: str | Path) -> AverageColorCache:
        """Load the cache file, creating it (and its directory) if absent.

        Never raises for I/O problems: a cache that cannot be read comes
        back disabled.
        """
        path = Path(path)
        try:
            entries, mtime, malformed = cls._read(path)
        except CacheUnavailable as exc:
            logger.warning(
                "%s. Average colours will not be cached during this run.", exc,
            )
            return cls(path, enabled=False)

        cache = cls(path, entries, mtime=mtime)
        if malformed:
            cache.stats.malformed = malformed
            cache._dirty = True
            logger.warning(
                "Skipped %d malformed line(s) in cache file %s; "
                "they will be dropped on rewrite.", malformed, path,
            )
        logger.debug("Loaded %d cache entries from %s", len(entries), path)
        return cache

    @staticmethod
    def _read(path: Path) -> tuple[list[CacheEntry], float, int]:
        entries: list[CacheEntry] = []
        malformed = 0
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if not path.exists():
                # "a" never truncates
                with open(path, "a", **_FILE_OPTS):
                    pass
            with open(path, "r", **_FILE_OPTS) as f:
                mtime = os.fstat(f.fileno()).st_mtime
                for lineno, line in enumerate(f, 1):
                    try:
                        key, color = parse_line(lineno, line)
                    except MalformedCacheLine as exc:
                        logger.debug("%s", exc)
                        malformed += 1
                        continue
                    entries.append(CacheEntry(key, color, line, loaded=True))
        except OSError as exc:
            raise CacheUnavailable(f"Cannot open cache file {path}: {exc}") from exc
        return entries, mtime, malformed

    def close_and_compact(self) -> None:
        """Rewrite the file without tombstoned lines.

        A failed rewrite leaves the old file in place and logs a warning;
        the next run may then see stale or duplicate lines.
        """
        if not self._enabled or self._closed:
            return
        self._closed = True
        logger.debug(
            "Cache %s: %d hits, %d misses, %d stored, %d tombstoned",
            self.path, self.stats.hits, self.stats.misses,
            self.stats.stores, self.stats.tombstones,
        )
        if not self._dirty:
            return
        # The rewrite bumps the file mtime: drop lines whose source
        # changed after it was cached.
        for entry in self._entries:
            if not entry.tombstoned and self._changed(entry):
                self._tombstone(entry)
        try:
            self._rewrite()
        except CacheCompactionFailure as exc:
            logger.warning(
                "%s. The cache may contain stale or duplicate entries.", exc,
            )

    def _rewrite(self) -> None:
        try:
            with open(self.path, "w", **_FILE_OPTS) as f:
                for entry in self._entries:
                    if entry.tombstoned:
                        continue
                    line = entry.line
                    f.write(line if line.endswith("\n") else line + "\n")
        except OSError as exc:
            raise CacheCompactionFailure(
                f"Failed to rewrite cache file {self.path}: {exc}"
            ) from exc

    def __enter__(self) -> AverageColorCache:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close_and_compact()

    # -- queries --------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def mtime(self) -> float | None:
        """Modification time of the cache file when it was opened."""
        return self._mtime

    @property
    def entries(self) -> tuple[CacheEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return sum(1 for e in self._entries if not e.tombstoned)

    def lookup(self, path: str) -> RGB | None:
        """Cached average colour of *path*, or None on a miss.

        Entries stored during this run always hit. A loaded entry hits
        only while *path* is no newer than the cache file; stale ones met
        along the way are tombstoned, and after a miss the caller is
        expected to compute the colour and :meth:`store` it.
        """
        if not self._enabled:
            self.stats.misses += 1
            return None
        for entry in self._by_path.get(path, ()):
            if entry.tombstoned:
                continue
            if self._is_current(entry):
                self.stats.hits += 1
                return entry.color
            self._tombstone(entry)
        self.stats.misses += 1
        return None

    def store(self, path: str, color: RGB) -> bool:
        """Append an entry for *path*. Returns False if the cache is disabled.

        Older lines for the same path are left alone; they are already
        tombstoned or will lose to this one.
        """
        if not self._enabled:
            return False
        color = RGB(*color)
        self._append(CacheEntry(
            path, color, format_line(path, color),
            source_mtime=_source_mtime(path),
        ))
        self.stats.stores += 1
        self._dirty = True
        return True

    # -- internals ------------------------------------------------------

    def _reference_mtime(self, entry: CacheEntry) -> float | None:
        return self._mtime if entry.loaded else entry.source_mtime

    def _is_current(self, entry: CacheEntry) -> bool:
        if not entry.loaded:
            return True
        source = _source_mtime(entry.path)
        return self._mtime is not None and source is not None and source <= self._mtime

    def _changed(self, entry: CacheEntry) -> bool:
        reference = self._reference_mtime(entry)
        source = _source_mtime(entry.path)
        return reference is not None and source is not None and source > reference

    def _append(self, entry: CacheEntry) -> None:
        self._entries.append(entry)
        self._by_path.setdefault(entry.path, []).append(entry)

    def _tombstone(self, entry: CacheEntry) -> None:
        entry.tombstoned = True
        self.stats.tombstones += 1
        self._dirty = True


def _source_mtime(path: str) -> float | None:
    try:
        return os.stat(path).st_mtime
    except OSError:
        return None
