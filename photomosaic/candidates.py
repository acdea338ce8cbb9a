"""Where candidate tile paths come from.

Anything iterable over path strings is a candidate source. Order
matters to the matcher (the first perfect match wins), so every source
here yields paths in a stable order.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path
from typing import Protocol

from photomosaic.config import MosaicConfig

logger = logging.getLogger(__name__)


class CandidateSource(Protocol):
    def __iter__(self) -> Iterator[str]: ...


class StaticCandidates:
    """A fixed, caller-supplied list of paths."""

    def __init__(self, paths: Iterable[str | Path]) -> None:
        self.paths = [str(p) for p in paths]

    def __iter__(self) -> Iterator[str]:
        return iter(self.paths)


class NulDelimitedCandidates(StaticCandidates):
    """Paths separated by NUL bytes, as printed by ``find -print0``."""

    @classmethod
    def from_bytes(cls, buf: bytes) -> NulDelimitedCandidates:
        return cls(
            os.fsdecode(segment) for segment in buf.split(b"\0") if segment
        )

    @classmethod
    def from_file(cls, path: str | Path) -> NulDelimitedCandidates:
        """Read a NUL-delimited list from *path*, or from stdin for ``-``."""
        if str(path) == "-":
            return cls.from_bytes(sys.stdin.buffer.read())
        return cls.from_bytes(Path(path).read_bytes())


class FilesystemCandidates:
    """Image files found by walking one or more directory trees.

    Directories are visited top-down in sorted order. A directory whose
    path matches any *exclude* regex is skipped with everything under it.
    """

    def __init__(
        self,
        roots: Sequence[str | Path],
        exclude: Sequence[str] = (),
        extensions: Iterable[str] = MosaicConfig.SUPPORTED_EXTENSIONS,
    ) -> None:
        self.roots = [Path(r) for r in roots]
        self.exclude = [re.compile(p) for p in exclude]
        self.extensions = frozenset(e.lower() for e in extensions)

    def _excluded(self, dirpath: str) -> bool:
        return any(p.search(dirpath) for p in self.exclude)

    def __iter__(self) -> Iterator[str]:
        for root in self.roots:
            if not root.is_dir():
                logger.warning("Candidate directory %s does not exist", root)
                continue
            for dirpath, dirnames, filenames in os.walk(root):
                if self._excluded(dirpath):
                    dirnames[:] = []
                    continue
                dirnames.sort()
                for name in sorted(filenames):
                    if os.path.splitext(name)[1].lower() in self.extensions:
                        yield os.path.join(dirpath, name)


def collect(source: CandidateSource) -> list[str]:
    """Materialise a source once; the assembler walks it for every block."""
    paths = list(source)
    logger.info("%d candidate images", len(paths))
    return paths
