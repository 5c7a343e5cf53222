"""Tests for the photo-gallery command line."""

from __future__ import annotations

import os

from PIL import Image
from typer.testing import CliRunner

from photoGallery.cli import app

runner = CliRunner()


def _library(root, count=3):
    root.mkdir(parents=True, exist_ok=True)
    for i in range(count):
        path = root / f"photo-{i}.jpg"
        Image.new("RGB", (64, 48), (10 * i, 80, 160)).save(path, "JPEG")
        stamp = 1_600_000_000 + i * 60
        os.utime(path, (stamp, stamp))
    return root


def test_browse_prints_first_page(tmp_path):
    library = _library(tmp_path / "lib")

    result = runner.invoke(app, ["browse", str(library), "--page-size", "2"])

    assert result.exit_code == 0, result.output
    assert "Loaded 2 of 3 photos" in result.output
    assert "More photos available" in result.output
    # Newest first
    assert "photo-2.jpg" in result.output
    assert "photo-0.jpg" not in result.output


def test_browse_several_pages(tmp_path):
    library = _library(tmp_path / "lib")

    result = runner.invoke(app, ["browse", str(library), "--page-size", "2", "--pages", "3"])

    assert result.exit_code == 0, result.output
    assert "Loaded 3 of 3 photos" in result.output
    assert "More photos available" not in result.output


def test_thumbnail_writes_jpeg(tmp_path):
    library = _library(tmp_path / "lib", count=1)
    output = tmp_path / "out" / "thumb.jpg"

    result = runner.invoke(
        app, ["thumbnail", str(library), "photo-0.jpg", str(output), "--width", "32", "--height", "32"]
    )

    assert result.exit_code == 0, result.output
    with Image.open(output) as img:
        assert img.format == "JPEG"
        assert img.size == (32, 32)


def test_thumbnail_missing_asset(tmp_path):
    library = _library(tmp_path / "lib", count=1)

    result = runner.invoke(app, ["thumbnail", str(library), "nope.jpg", str(tmp_path / "t.jpg")])

    assert result.exit_code == 1
    assert "Error: Asset not found: nope.jpg" in result.output


def test_favorite_toggle_and_list(tmp_path):
    library = _library(tmp_path / "lib", count=2)

    result = runner.invoke(app, ["favorites", str(library)])
    assert "No favorites" in result.output

    result = runner.invoke(app, ["favorite", str(library), "photo-1.jpg"])
    assert result.exit_code == 0, result.output
    assert "Added photo-1.jpg" in result.output

    result = runner.invoke(app, ["favorites", str(library)])
    assert result.output.strip().splitlines() == ["photo-1.jpg"]

    result = runner.invoke(app, ["favorite", str(library), "photo-1.jpg"])
    assert "Removed photo-1.jpg" in result.output
    assert (library / "favorites.json").exists()


def test_favorite_unknown_asset(tmp_path):
    library = _library(tmp_path / "lib", count=1)

    result = runner.invoke(app, ["favorite", str(library), "missing.jpg"])

    assert result.exit_code == 1
    assert "Error: Asset not found: missing.jpg" in result.output


def test_browse_rejects_out_of_range_page_size(tmp_path):
    library = _library(tmp_path / "lib", count=1)

    for value in ("0", "1001"):
        result = runner.invoke(app, ["browse", str(library), "--page-size", value])
        assert result.exit_code == 2, result.output
        assert "Traceback" not in result.output
