"""Tests for the command-line interface."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from PIL import Image
from typer.testing import CliRunner

from photomosaic.cli import app

runner = CliRunner()


@pytest.fixture
def target(tmp_path: Path) -> Path:
    """4x4 PNG: left half black, right half white."""
    arr = np.zeros((4, 4, 3), dtype=np.uint8)
    arr[:, 2:] = 255
    p = tmp_path / "target.png"
    Image.fromarray(arr).save(p)
    return p


@pytest.fixture
def pics(tmp_path: Path) -> Path:
    """Two 2x2 candidates, already at tile size."""
    root = tmp_path / "pics"
    root.mkdir()
    Image.new("RGB", (2, 2), (0, 0, 0)).save(root / "black.png")
    Image.new("RGB", (2, 2), (255, 255, 255)).save(root / "white.png")
    return root


class TestMosaicCommand:
    def test_builds_mosaic(self, tmp_path: Path, target: Path, pics: Path) -> None:
        out = tmp_path / "out" / "mosaic.png"
        cache_file = tmp_path / "cache" / "avgs"
        result = runner.invoke(app, [
            "mosaic", "-i", str(target), "-o", str(out), "-w", "2", "-l", "2",
            "-p", str(pics), "--cache-file", str(cache_file),
        ])
        assert result.exit_code == 0, result.output
        np.testing.assert_array_equal(
            np.array(Image.open(out).convert("RGB")),
            np.array(Image.open(target).convert("RGB")),
        )
        lines = cache_file.read_text().splitlines()
        assert sorted(lines) == [
            f"{pics / 'black.png'}\t000000",
            f"{pics / 'white.png'}\tffffff",
        ]

    def test_candidates_from_file(self, tmp_path: Path, target: Path, pics: Path) -> None:
        listing = tmp_path / "list"
        listing.write_bytes(
            f"{pics / 'white.png'}\0{pics / 'black.png'}\0".encode()
        )
        out = tmp_path / "mosaic.png"
        result = runner.invoke(app, [
            "mosaic", "-i", str(target), "-o", str(out), "-w", "2", "-l", "2",
            "--candidates-from", str(listing),
            "--cache-file", str(tmp_path / "avgs"),
        ])
        assert result.exit_code == 0, result.output
        assert out.exists()

    def test_no_candidates(self, tmp_path: Path, target: Path) -> None:
        empty = tmp_path / "empty"
        empty.mkdir()
        result = runner.invoke(app, [
            "mosaic", "-i", str(target), "-o", str(tmp_path / "o.png"),
            "-p", str(empty), "--cache-file", str(tmp_path / "avgs"),
        ])
        assert result.exit_code == 1
        assert not (tmp_path / "o.png").exists()

    def test_unreadable_input(self, tmp_path: Path, pics: Path) -> None:
        bad = tmp_path / "bad.png"
        bad.write_bytes(b"nope")
        result = runner.invoke(app, [
            "mosaic", "-i", str(bad), "-o", str(tmp_path / "o.png"),
            "-p", str(pics), "--cache-file", str(tmp_path / "avgs"),
        ])
        assert result.exit_code == 1

    def test_unreadable_candidate_is_fatal(
        self, tmp_path: Path, target: Path, pics: Path,
    ) -> None:
        (pics / "broken.png").write_bytes(b"nope")
        args = [
            "mosaic", "-i", str(target), "-o", str(tmp_path / "o.png"),
            "-w", "2", "-l", "2", "-p", str(pics),
            "--cache-file", str(tmp_path / "avgs"),
        ]
        assert runner.invoke(app, args).exit_code == 1
        assert runner.invoke(app, [*args, "--skip-unreadable"]).exit_code == 0

    def test_missing_output_is_usage_error(self, target: Path) -> None:
        result = runner.invoke(app, ["mosaic", "-i", str(target)])
        assert result.exit_code == 2

    def test_zero_width_is_usage_error(self, tmp_path: Path, target: Path) -> None:
        result = runner.invoke(app, [
            "mosaic", "-i", str(target), "-o", str(tmp_path / "o.png"), "-w", "0",
        ])
        assert result.exit_code == 2

    def test_bad_exclude_regex(self, tmp_path: Path, target: Path) -> None:
        result = runner.invoke(app, [
            "mosaic", "-i", str(target), "-o", str(tmp_path / "o.png"), "-x", "(",
        ])
        assert result.exit_code == 2


class TestOtherModes:
    def test_resize(self, tmp_path: Path, target: Path) -> None:
        out = tmp_path / "small.png"
        result = runner.invoke(app, [
            "resize", "-i", str(target), "-o", str(out), "-w", "3", "-l", "1",
        ])
        assert result.exit_code == 0, result.output
        assert Image.open(out).size == (3, 1)

    def test_splotch(self, tmp_path: Path) -> None:
        arr = np.zeros((2, 2, 3), dtype=np.uint8)
        arr[0, 0] = (8, 8, 8)
        src = tmp_path / "src.png"
        Image.fromarray(arr).save(src)
        out = tmp_path / "splotched.png"
        result = runner.invoke(app, [
            "splotch", "-i", str(src), "-o", str(out), "-w", "2", "-l", "2",
        ])
        assert result.exit_code == 0, result.output
        np.testing.assert_array_equal(
            np.array(Image.open(out).convert("RGB")), np.full((2, 2, 3), 2),
        )

    def test_average(self, tmp_path: Path) -> None:
        src = tmp_path / "src.png"
        Image.new("RGB", (3, 3), (10, 20, 30)).save(src)
        result = runner.invoke(app, ["average", "-i", str(src)])
        assert result.exit_code == 0, result.output
        assert "#0a141e" in result.output

    def test_average_per_block(self, target: Path) -> None:
        result = runner.invoke(app, ["average", "-i", str(target), "-w", "2", "-l", "4"])
        assert result.exit_code == 0, result.output
        assert "#000000" in result.output
        assert "#ffffff" in result.output

    def test_pixel_info(self, target: Path) -> None:
        result = runner.invoke(app, ["pixel-info", "-i", str(target), "--x", "3", "--y", "0"])
        assert result.exit_code == 0, result.output
        assert "PNG" in result.output
        assert "4x4" in result.output
        assert "#ffffff" in result.output

    def test_pixel_info_needs_both_coordinates(self, target: Path) -> None:
        result = runner.invoke(app, ["pixel-info", "-i", str(target), "--x", "1"])
        assert result.exit_code == 2

    def test_pixel_info_out_of_range(self, target: Path) -> None:
        result = runner.invoke(app, ["pixel-info", "-i", str(target), "--x", "9", "--y", "0"])
        assert result.exit_code == 2

    def test_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["average", "-i", str(tmp_path / "absent.png")])
        assert result.exit_code == 1

    def test_help(self) -> None:
        result = runner.invoke(app, ["-h"])
        assert result.exit_code == 0
        assert "mosaic" in result.output
