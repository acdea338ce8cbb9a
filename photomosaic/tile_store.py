"""Per-run store of decoded, resized candidate tiles.

Each candidate is decoded at most once per run. The resized pixels are
written as raw RGB bytes to a private temp directory and read back on
later requests, so memory stays flat however many candidates there are.
The directory is removed by :meth:`DecodedTileStore.close`; a killed
process leaves it behind.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path

import numpy as np

from photomosaic.errors import ImageDecodeError
from photomosaic.image_io import load_and_resize

logger = logging.getLogger(__name__)

Sampler = Callable[[str, int, int], np.ndarray]


class DecodedTileStore:
    """Decoded tiles keyed by candidate path, for a single tile size.

    Args:
        sampler: ``sampler(path, width, height)`` returning an
            ``(height, width, 3)`` uint8 array.
        tmp_root: Parent for the scratch directory (system default if None).
    """

    def __init__(
        self,
        sampler: Sampler = load_and_resize,
        tmp_root: str | Path | None = None,
    ) -> None:
        self._sampler = sampler
        self._tmp_root = tmp_root
        self._scratch: Path | None = None
        self._files: dict[str, Path] = {}
        self._size: tuple[int, int] | None = None
        self.decode_count = 0
        # paths whose decode raised ImageDecodeError this run
        self.failed: set[str] = set()

    def get_tile_pixels(self, path: str, width: int, height: int) -> np.ndarray:
        """Pixels of *path* resized to ``width x height``."""
        if self._size is None:
            self._size = (width, height)
        elif self._size != (width, height):
            raise ValueError(
                f"tile store holds {self._size[0]}x{self._size[1]} tiles, "
                f"got a request for {width}x{height}"
            )

        scratch_file = self._files.get(path)
        if scratch_file is not None:
            return self._read_back(path, scratch_file, width, height)

        try:
            pixels = self._decode(path, width, height)
        except ImageDecodeError:
            self.failed.add(path)
            raise
        self.decode_count += 1

        scratch_file = self._scratch_dir() / f"{len(self._files):06d}.rgb"
        pixels.tofile(scratch_file)
        self._files[path] = scratch_file
        return pixels

    def __contains__(self, path: object) -> bool:
        return path in self._files

    def __len__(self) -> int:
        return len(self._files)

    @property
    def scratch_dir(self) -> Path | None:
        return self._scratch

    def close(self) -> None:
        """Delete every scratch file."""
        if self._scratch is not None:
            shutil.rmtree(self._scratch, ignore_errors=True)
            logger.debug("Removed %d scratch tiles in %s", len(self._files), self._scratch)
        self._scratch = None
        self._files.clear()

    def __enter__(self) -> DecodedTileStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _scratch_dir(self) -> Path:
        if self._scratch is None:
            self._scratch = Path(tempfile.mkdtemp(prefix="photomosaic-", dir=self._tmp_root))
            logger.debug("Scratch tiles go to %s", self._scratch)
        return self._scratch

    def _decode(self, path: str, width: int, height: int) -> np.ndarray:
        pixels = np.ascontiguousarray(self._sampler(path, width, height), dtype=np.uint8)
        if pixels.shape != (height, width, 3):
            raise ImageDecodeError(
                path, f"sampler returned shape {pixels.shape}, "
                f"expected {(height, width, 3)}",
            )
        return pixels

    @staticmethod
    def _read_back(path: str, scratch_file: Path, width: int, height: int) -> np.ndarray:
        expected = width * height * 3
        data = np.fromfile(scratch_file, dtype=np.uint8)
        if data.size != expected:
            raise ImageDecodeError(
                path, f"scratch copy {scratch_file} holds {data.size} bytes, "
                f"expected {expected}",
            )
        return data.reshape(height, width, 3)
