"""Nearest-average-colour search over an ordered candidate list."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

from photomosaic.avg_cache import AverageColorCache
from photomosaic.color_utils import MAX_DISTANCE, RGB, average_color, color_distance
from photomosaic.errors import ImageDecodeError, MatcherExhausted
from photomosaic.tile_store import DecodedTileStore

logger = logging.getLogger(__name__)

# Anything closer than this is taken as a perfect match and ends the search.
PERFECT_MATCH_THRESHOLD = 0.01


@dataclass(frozen=True)
class Match:
    path: str
    pixels: np.ndarray
    distance: float


def candidate_color(
    path: str,
    tile_w: int,
    tile_h: int,
    cache: AverageColorCache,
    tiles: DecodedTileStore,
) -> tuple[RGB, np.ndarray | None]:
    """Average colour of a candidate, from the cache when possible.

    Returns the colour and, if the candidate had to be decoded, its
    pixels (None on a cache hit).
    """
    color = cache.lookup(path)
    if color is not None:
        return color, None
    pixels = tiles.get_tile_pixels(path, tile_w, tile_h)
    color = average_color(pixels)
    cache.store(path, color)
    return color, pixels


def find_closest(
    target: RGB,
    candidates: Iterable[str],
    tile_w: int,
    tile_h: int,
    *,
    cache: AverageColorCache,
    tiles: DecodedTileStore,
    skip_unreadable: bool = False,
) -> Match:
    """Pick the candidate whose average colour is nearest to *target*.

    Candidates are scanned in order. Ties keep the earlier candidate,
    and the first one within :data:`PERFECT_MATCH_THRESHOLD` is returned
    without looking at the rest.

    Raises:
        ImageDecodeError: a candidate could not be decoded (unless
            *skip_unreadable*, which logs and moves on).
        MatcherExhausted: no candidate was usable.
    """
    target = RGB(*target)
    best: Match | None = None
    # above the largest possible distance, so any candidate can win
    best_distance = MAX_DISTANCE + 1.0

    for path in candidates:
        if skip_unreadable and path in tiles.failed:
            continue
        try:
            color, pixels = candidate_color(path, tile_w, tile_h, cache, tiles)
            distance = color_distance(color, target)
            if distance >= best_distance:
                continue
            if pixels is None:
                pixels = tiles.get_tile_pixels(path, tile_w, tile_h)
        except ImageDecodeError as exc:
            if not skip_unreadable:
                raise
            logger.warning("Skipping candidate: %s", exc)
            continue

        best = Match(path, pixels, distance)
        best_distance = distance
        if distance < PERFECT_MATCH_THRESHOLD:
            break

    if best is None:
        raise MatcherExhausted(
            f"no usable candidate for target colour #{target.to_hex()}"
        )
    return best
