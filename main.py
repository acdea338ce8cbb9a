#!/usr/bin/env python3
"""
main.py — Quick-start entry point.

    python main.py mosaic -i photo.jpg -o mosaic.png -w 16 -l 16 -p ~/pics

Or use the installed console script:

    photomosaic --help
    photomosaic splotch -i photo.jpg -o splotched.png -w 8 -l 8
"""

from photomosaic.cli import app

if __name__ == "__main__":
    app()
