"""
Photomosaic
===========

Rebuild an image out of other images: every fixed-size block of the
target is replaced by the candidate picture whose average colour is
closest to the block's.

Average colours of candidates persist between runs in a small text
cache that invalidates itself when a candidate file changes.
"""

__version__ = "1.0.0"

from photomosaic.avg_cache import AverageColorCache, CacheEntry
from photomosaic.candidates import (
    FilesystemCandidates,
    NulDelimitedCandidates,
    StaticCandidates,
)
from photomosaic.color_utils import RGB, average_color, color_distance
from photomosaic.config import MosaicConfig
from photomosaic.errors import (
    ImageDecodeError,
    MatcherExhausted,
    PhotomosaicError,
)
from photomosaic.image_io import load_and_resize, load_image, save_image
from photomosaic.matcher import Match, find_closest
from photomosaic.mosaic import assemble, splotch
from photomosaic.tile_store import DecodedTileStore

__all__ = [
    "RGB",
    "AverageColorCache",
    "CacheEntry",
    "DecodedTileStore",
    "FilesystemCandidates",
    "ImageDecodeError",
    "Match",
    "MatcherExhausted",
    "MosaicConfig",
    "NulDelimitedCandidates",
    "PhotomosaicError",
    "StaticCandidates",
    "assemble",
    "average_color",
    "color_distance",
    "find_closest",
    "load_and_resize",
    "load_image",
    "save_image",
    "splotch",
]
