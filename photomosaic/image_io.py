"""Image loading, resizing and saving.

Everything that touches Pillow lives here; the rest of the package only
sees ``(H, W, 3)`` uint8 arrays.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np
from PIL import Image

from photomosaic.color_utils import RGB
from photomosaic.errors import ImageDecodeError, ImageWriteError

_DECODE_ERRORS = (OSError, ValueError, Image.DecompressionBombError)


@dataclass(frozen=True)
class ImageInfo:
    """What the pixel-info report prints about a file."""

    path: str
    format: str | None
    mode: str
    width: int
    height: int

    @property
    def pixel_count(self) -> int:
        return self.width * self.height


def load_image(path: str | Path) -> np.ndarray:
    """Load an image as an (H, W, 3) uint8 RGB array."""
    try:
        with Image.open(path) as img:
            return np.array(img.convert("RGB"), dtype=np.uint8)
    except _DECODE_ERRORS as exc:
        raise ImageDecodeError(str(path), str(exc)) from exc


def load_and_resize(path: str | Path, width: int, height: int) -> np.ndarray:
    """Decode *path* and resize it to exactly ``width x height``.

    This is the pixel sampler used for candidate tiles.

    Returns:
        (height, width, 3) uint8 array, row-major RGB.
    """
    if width < 1 or height < 1:
        raise ValueError(f"target size must be positive, got {width}x{height}")
    try:
        with Image.open(path) as img:
            img = img.convert("RGB").resize((width, height), Image.LANCZOS)
            return np.array(img, dtype=np.uint8)
    except _DECODE_ERRORS as exc:
        raise ImageDecodeError(str(path), str(exc)) from exc


# The ``resize`` mode is the sampler applied to a whole image.
resize_image = load_and_resize


def save_image(array: np.ndarray, path: str | Path) -> None:
    """Encode an (H, W, 3) array; the format follows the file extension."""
    try:
        Image.fromarray(array.astype(np.uint8)).save(path)
    except _DECODE_ERRORS as exc:
        raise ImageWriteError(str(path), str(exc)) from exc


def describe_image(path: str | Path) -> ImageInfo:
    try:
        with Image.open(path) as img:
            return ImageInfo(
                path=str(path),
                format=img.format,
                mode=img.mode,
                width=img.width,
                height=img.height,
            )
    except _DECODE_ERRORS as exc:
        raise ImageDecodeError(str(path), str(exc)) from exc


def pixel_at(pixels: np.ndarray, x: int, y: int) -> RGB:
    """Colour of the pixel in column *x*, row *y*."""
    h, w = pixels.shape[:2]
    if not (0 <= x < w and 0 <= y < h):
        raise IndexError(f"pixel ({x}, {y}) outside {w}x{h} image")
    r, g, b = (int(c) for c in pixels[y, x])
    return RGB(r, g, b)
