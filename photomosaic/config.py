"""Centralised configuration via a frozen dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

# Where average colours persist between runs. Override with --cache-file.
DEFAULT_CACHE_PATH = Path("~/.cache/photomosaic/avgs").expanduser()


@dataclass(frozen=True)
class MosaicConfig:
    """All tuneable parameters for a mosaic run.

    Attributes:
        tile_width:      Width of every block / tile in pixels.
        tile_height:     Height of every block / tile in pixels.
        cache_path:      Average-colour cache file.
        pics_dirs:       Directory trees scanned for candidate images.
        exclude:         Regexes; directories whose path matches are skipped.
        skip_unreadable: Skip candidates that fail to decode instead of aborting.
    """

    # Blocks
    tile_width: int = 16
    tile_height: int = 16

    # Candidates
    pics_dirs: tuple[Path, ...] = field(
        default_factory=lambda: (Path("~/pics").expanduser(),)
    )
    exclude: tuple[str, ...] = ()
    skip_unreadable: bool = False

    # Cache
    cache_path: Path = DEFAULT_CACHE_PATH

    SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
        {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp", ".jfif", ".gif"}
    )
