"""Rich command-line interface powered by Typer.

Exit status: 0 on success, 2 when the arguments cannot be parsed,
1 when reading, processing or writing an image fails.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from photomosaic.avg_cache import AverageColorCache
from photomosaic.candidates import FilesystemCandidates, NulDelimitedCandidates, collect
from photomosaic.color_utils import average_color
from photomosaic.config import MosaicConfig
from photomosaic.errors import MatcherExhausted, PhotomosaicError
from photomosaic.image_io import describe_image, load_image, pixel_at, resize_image, save_image
from photomosaic.mosaic import assemble, block_averages, block_count, splotch
from photomosaic.tile_store import DecodedTileStore

app = typer.Typer(
    name="photomosaic",
    help="Build photomosaics out of a folder of pictures.",
    add_completion=False,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()
err_console = Console(stderr=True)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False, markup=False)],
    )


@contextmanager
def _exit_on_failure() -> Iterator[None]:
    """Turn image and processing errors into exit status 1."""
    try:
        yield
    except (PhotomosaicError, OSError) as exc:
        err_console.print(f"[bold red]FATAL:[/bold red] {exc}", highlight=False)
        raise typer.Exit(1) from exc


def _check_patterns(patterns: list[str] | None) -> list[str] | None:
    for pattern in patterns or ():
        try:
            re.compile(pattern)
        except re.error as exc:
            raise typer.BadParameter(f"{pattern!r} is not a valid regex: {exc}") from exc
    return patterns


# Defaults come from MosaicConfig - single source of truth
_DEFAULTS = MosaicConfig()

_INPUT = typer.Option(..., "--input", "-i", help="Input image")
_OUTPUT = typer.Option(..., "--output", "-o", help="Where to write the result")
_VERBOSE = typer.Option(False, "--verbose", "-v", help="Debug logging")


# -- mosaic ------------------------------------------------------------

@app.command()
def mosaic(
    input_path: Path = _INPUT,
    output: Path = _OUTPUT,
    width: int = typer.Option(
        _DEFAULTS.tile_width, "--width", "-w", min=1, help="Block width in pixels",
    ),
    length: int = typer.Option(
        _DEFAULTS.tile_height, "--length", "-l", min=1, help="Block height in pixels",
    ),
    pics: list[Path] | None = typer.Option(
        None, "--pics", "-p",
        help="Directory tree of candidate images (repeatable)",
    ),
    exclude: list[str] | None = typer.Option(
        None, "--exclude", "-x", callback=_check_patterns,
        help="Skip directories whose path matches this regex (repeatable)",
    ),
    candidates_from: str | None = typer.Option(
        None, "--candidates-from",
        help="NUL-delimited candidate list (e.g. from find -print0); '-' for stdin",
    ),
    cache_file: Path = typer.Option(
        _DEFAULTS.cache_path, "--cache-file", help="Average-colour cache file",
    ),
    skip_unreadable: bool = typer.Option(
        _DEFAULTS.skip_unreadable, "--skip-unreadable/--strict",
        help="Skip candidates that cannot be decoded instead of aborting",
    ),
    verbose: bool = _VERBOSE,
) -> None:
    """Replace each WIDTH x LENGTH block of the input with the candidate
    image whose average colour is closest."""
    _setup_logging(verbose)
    logger = logging.getLogger("photomosaic")

    cfg = MosaicConfig(
        tile_width=width,
        tile_height=length,
        pics_dirs=tuple(pics) if pics else _DEFAULTS.pics_dirs,
        exclude=tuple(exclude or ()),
        skip_unreadable=skip_unreadable,
        cache_path=cache_file,
    )

    t_total = time.perf_counter()
    with _exit_on_failure():
        image = load_image(input_path)
        h, w = image.shape[:2]

        if candidates_from is not None:
            source = NulDelimitedCandidates.from_file(candidates_from)
        else:
            source = FilesystemCandidates(
                cfg.pics_dirs, cfg.exclude, cfg.SUPPORTED_EXTENSIONS,
            )
        paths = collect(source)
        if not paths:
            raise MatcherExhausted("no candidate images found")

        console.print(Panel.fit(
            f"[bold]PHOTOMOSAIC[/bold]\n"
            f"Input: {input_path.name} ({w}x{h})  |  Blocks: {width}x{length}\n"
            f"Candidates: {len(paths)}  |  Cache: {cfg.cache_path}",
            border_style="cyan",
        ))

        total = block_count(w, h, width, length)
        progress = Progress(
            TextColumn("[cyan]Matching blocks"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )
        with AverageColorCache.open(cfg.cache_path) as cache, \
                DecodedTileStore() as tiles, progress:
            task = progress.add_task("blocks", total=total)
            result = assemble(
                image, width, length, paths,
                cache=cache,
                tiles=tiles,
                skip_unreadable=cfg.skip_unreadable,
                on_block=lambda done, _total: progress.update(task, completed=done),
            )
            logger.info(
                "Cache: %d hits, %d misses; %d candidates decoded",
                cache.stats.hits, cache.stats.misses, tiles.decode_count,
            )

        output.parent.mkdir(parents=True, exist_ok=True)
        save_image(result, output)

    elapsed = time.perf_counter() - t_total
    console.print(
        f"[green]✓[/green] Saved to {output}  "
        f"[dim]{w}x{h}  {total} blocks  time={elapsed:.1f}s[/dim]"
    )


# -- resize ------------------------------------------------------------

@app.command()
def resize(
    input_path: Path = _INPUT,
    output: Path = _OUTPUT,
    width: int = typer.Option(..., "--width", "-w", min=1, help="New width"),
    length: int = typer.Option(..., "--length", "-l", min=1, help="New height"),
    verbose: bool = _VERBOSE,
) -> None:
    """Resize the input image to exactly WIDTH x LENGTH."""
    _setup_logging(verbose)
    with _exit_on_failure():
        resized = resize_image(input_path, width, length)
        output.parent.mkdir(parents=True, exist_ok=True)
        save_image(resized, output)
    console.print(f"[green]✓[/green] Saved to {output}  [dim]{width}x{length}[/dim]")


# -- splotch -----------------------------------------------------------

@app.command(name="splotch")
def splotch_command(
    input_path: Path = _INPUT,
    output: Path = _OUTPUT,
    width: int = typer.Option(_DEFAULTS.tile_width, "--width", "-w", min=1),
    length: int = typer.Option(_DEFAULTS.tile_height, "--length", "-l", min=1),
    verbose: bool = _VERBOSE,
) -> None:
    """Fill each WIDTH x LENGTH block with its own average colour."""
    _setup_logging(verbose)
    with _exit_on_failure():
        image = load_image(input_path)
        result = splotch(image, width, length)
        output.parent.mkdir(parents=True, exist_ok=True)
        save_image(result, output)
    console.print(f"[green]✓[/green] Saved to {output}")


# -- reports -----------------------------------------------------------

@app.command()
def average(
    input_path: Path = _INPUT,
    width: int | None = typer.Option(
        None, "--width", "-w", min=1, help="Report per block instead of whole image",
    ),
    length: int | None = typer.Option(None, "--length", "-l", min=1),
    verbose: bool = _VERBOSE,
) -> None:
    """Print the average colour of the image, or of every block."""
    _setup_logging(verbose)
    with _exit_on_failure():
        image = load_image(input_path)

    color = average_color(image)
    console.print(f"#{color.to_hex()}  rgb({color.r}, {color.g}, {color.b})", highlight=False)
    if width is None and length is None:
        return

    h, w = image.shape[:2]
    table = Table(title=f"Block averages ({width or w}x{length or h})")
    table.add_column("x", justify="right")
    table.add_column("y", justify="right")
    table.add_column("hex")
    table.add_column("rgb")
    for x, y, c in block_averages(image, width or w, length or h):
        table.add_row(str(x), str(y), f"#{c.to_hex()}", f"{c.r}, {c.g}, {c.b}")
    console.print(table)


@app.command(name="pixel-info")
def pixel_info(
    input_path: Path = _INPUT,
    x: int | None = typer.Option(None, "--x", min=0, help="Column of a pixel to print"),
    y: int | None = typer.Option(None, "--y", min=0, help="Row of a pixel to print"),
    verbose: bool = _VERBOSE,
) -> None:
    """Print format, mode and size of the image, and optionally one pixel."""
    _setup_logging(verbose)
    if (x is None) != (y is None):
        raise typer.BadParameter("--x and --y must be given together")
    with _exit_on_failure():
        info = describe_image(input_path)
        pixels = load_image(input_path)

    table = Table(show_header=False)
    table.add_row("File", info.path)
    table.add_row("Format", info.format or "unknown")
    table.add_row("Mode", info.mode)
    table.add_row("Size", f"{info.width}x{info.height}")
    table.add_row("Pixels", str(info.pixel_count))
    table.add_row("Average", f"#{average_color(pixels).to_hex()}")
    if x is not None and y is not None:
        try:
            c = pixel_at(pixels, x, y)
        except IndexError as exc:
            raise typer.BadParameter(str(exc)) from exc
        table.add_row(f"Pixel ({x}, {y})", f"#{c.to_hex()}  rgb({c.r}, {c.g}, {c.b})")
    console.print(table)


if __name__ == "__main__":
    app()
