"""Block-by-block assembly of the output image.

Blocks are visited in row-major order. When the image size is not a
multiple of the block size, the blocks on the right and bottom edges
are truncated: their average covers only the in-bounds pixels and only
the top-left part of the chosen tile is written.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator, Sequence

import numpy as np

from photomosaic.avg_cache import AverageColorCache
from photomosaic.color_utils import RGB, average_color
from photomosaic.matcher import find_closest
from photomosaic.tile_store import DecodedTileStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def block_origins(
    width: int, height: int, tile_w: int, tile_h: int,
) -> Iterator[tuple[int, int]]:
    """Top-left ``(x, y)`` of every block, row by row."""
    if tile_w < 1 or tile_h < 1:
        raise ValueError(f"block size must be positive, got {tile_w}x{tile_h}")
    for y in range(0, height, tile_h):
        for x in range(0, width, tile_w):
            yield x, y


def block_count(width: int, height: int, tile_w: int, tile_h: int) -> int:
    return -(-width // tile_w) * -(-height // tile_h)


def assemble(
    image: np.ndarray,
    tile_w: int,
    tile_h: int,
    candidates: Sequence[str],
    *,
    cache: AverageColorCache,
    tiles: DecodedTileStore,
    skip_unreadable: bool = False,
    on_block: ProgressCallback | None = None,
) -> np.ndarray:
    """Replace every block of *image* with its closest candidate tile.

    Args:
        image:      (H, W, 3) uint8 target image; left unmodified.
        tile_w:     Block / tile width.
        tile_h:     Block / tile height.
        candidates: Ordered candidate paths, scanned for every block.
        cache:      Average-colour cache shared by all blocks.
        tiles:      Decoded-tile store shared by all blocks.
        skip_unreadable: Skip candidates that fail to decode.
        on_block:   Called as ``on_block(done, total)`` after each block.

    Returns:
        (H, W, 3) uint8 mosaic.
    """
    h, w = image.shape[:2]
    out = image.copy()
    total = block_count(w, h, tile_w, tile_h)
    logger.info(
        "Assembling %dx%d image from %d blocks of %dx%d, %d candidates",
        w, h, total, tile_w, tile_h, len(candidates),
    )
    t0 = time.perf_counter()

    for done, (x, y) in enumerate(block_origins(w, h, tile_w, tile_h), 1):
        target = average_color(image, x, y, tile_w, tile_h)
        match = find_closest(
            target, candidates, tile_w, tile_h,
            cache=cache, tiles=tiles, skip_unreadable=skip_unreadable,
        )
        bh = min(tile_h, h - y)
        bw = min(tile_w, w - x)
        out[y:y + bh, x:x + bw] = match.pixels[:bh, :bw]
        logger.debug(
            "Block (%d, %d) #%s -> %s (distance %.2f)",
            x, y, target.to_hex(), match.path, match.distance,
        )
        if on_block is not None:
            on_block(done, total)

    logger.info("Mosaic assembled  (%.1f s)", time.perf_counter() - t0)
    return out


def block_averages(
    image: np.ndarray, tile_w: int, tile_h: int,
) -> list[tuple[int, int, RGB]]:
    """``(x, y, average)`` for every block."""
    h, w = image.shape[:2]
    return [
        (x, y, average_color(image, x, y, tile_w, tile_h))
        for x, y in block_origins(w, h, tile_w, tile_h)
    ]


def splotch(image: np.ndarray, tile_w: int, tile_h: int) -> np.ndarray:
    """Fill every block with its own average colour."""
    out = image.copy()
    for x, y, color in block_averages(image, tile_w, tile_h):
        out[y:y + tile_h, x:x + tile_w] = color
    return out
