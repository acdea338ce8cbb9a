"""RGB triples, block averages and colour distance."""

from __future__ import annotations

import math
import re
from typing import NamedTuple

import numpy as np

_HEX6 = re.compile(r"[0-9a-fA-F]{6}")


class RGB(NamedTuple):
    """One colour, each channel in 0..255."""

    r: int
    g: int
    b: int

    def to_hex(self) -> str:
        """Six lowercase hex digits, R then G then B."""
        return f"{self.r:02x}{self.g:02x}{self.b:02x}"

    @classmethod
    def from_hex(cls, text: str) -> RGB:
        if not _HEX6.fullmatch(text):
            raise ValueError(f"expected six hex digits, got {text!r}")
        return cls(int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16))


# Largest possible distance between two RGB colours: sqrt(3 * 255^2).
MAX_DISTANCE = math.sqrt(3 * 255 ** 2)


def average_color(
    pixels: np.ndarray,
    x: int = 0,
    y: int = 0,
    width: int | None = None,
    height: int | None = None,
) -> RGB:
    """Mean colour of a rectangular block of an ``(H, W, 3)`` array.

    The block starts at column *x*, row *y* and is clipped to the array
    bounds. Channel sums are accumulated as uint64 and divided with
    truncation, not rounding.
    """
    h, w = pixels.shape[:2]
    x_end = w if width is None else min(x + width, w)
    y_end = h if height is None else min(y + height, h)
    block = pixels[y:y_end, x:x_end].reshape(-1, 3)
    if len(block) == 0:
        raise ValueError(f"empty block at ({x}, {y}) in {w}x{h} image")
    sums = block.sum(axis=0, dtype=np.uint64)
    r, g, b = (int(s) // len(block) for s in sums)
    return RGB(r, g, b)


def color_distance(a: RGB, b: RGB) -> float:
    """Euclidean distance in RGB space."""
    dr = a[0] - b[0]
    dg = a[1] - b[1]
    db = a[2] - b[2]
    return math.sqrt(dr * dr + dg * dg + db * db)
