"""Tests for the directory and in-memory asset sources."""

from __future__ import annotations

import os
from datetime import datetime, timezone

import pytest
from PIL import Image

from photoGallery.application.services.asset_window import PagedAssetWindow
from photoGallery.domain.models import FetchStatus
from photoGallery.errors import InvalidParametersError
from photoGallery.infrastructure.sources.directory_source import (
    DirectoryAssetSource,
    _parse_location,
    read_metadata,
)
from photoGallery.infrastructure.sources.memory_source import InMemoryAssetSource

_TAG_DATETIME = 306


def _write_image(path, size=(64, 48), captured=None, mtime=None, fmt="JPEG"):
    path.parent.mkdir(parents=True, exist_ok=True)
    img = Image.new("RGB", size, (120, 30, 200))
    if captured is not None:
        exif = Image.Exif()
        exif[_TAG_DATETIME] = captured
        img.save(path, fmt, exif=exif.tobytes())
    else:
        img.save(path, fmt)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

class TestReadMetadata:
    def test_dimensions_and_size(self, tmp_path):
        path = _write_image(tmp_path / "a.jpg", size=(80, 40))
        meta = read_metadata(path)

        assert (meta.width, meta.height) == (80, 40)
        assert meta.byte_size == path.stat().st_size
        assert meta.aspect_ratio == pytest.approx(2.0)

    def test_exif_capture_time(self, tmp_path):
        path = _write_image(tmp_path / "a.jpg", captured="2021:06:15 08:30:00")
        meta = read_metadata(path)

        assert meta.created_at.replace(tzinfo=None) == datetime(2021, 6, 15, 8, 30)
        assert meta.created_at.tzinfo is not None

    def test_falls_back_to_mtime(self, tmp_path):
        stamp = datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc).timestamp()
        path = _write_image(tmp_path / "a.png", fmt="PNG", mtime=stamp)

        assert read_metadata(path).created_at == datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_unreadable_file_returns_none(self, tmp_path):
        path = tmp_path / "broken.jpg"
        path.write_text("not an image", encoding="utf-8")
        assert read_metadata(path) is None


def test_parse_location():
    gps = {1: "S", 2: (33.0, 52.0, 4.8), 3: "E", 4: (151.0, 12.0, 36.0)}
    assert _parse_location(gps) == "-33.868000, 151.210000"
    assert _parse_location({}) is None


# ---------------------------------------------------------------------------
# DirectoryAssetSource
# ---------------------------------------------------------------------------

class TestDirectoryAssetSource:
    def test_newest_first_with_relative_ids(self, tmp_path):
        _write_image(tmp_path / "old.jpg", captured="2019:01:01 00:00:00")
        _write_image(tmp_path / "trip" / "new.jpg", captured="2023:01:01 00:00:00")
        _write_image(tmp_path / "mid.jpg", captured="2021:01:01 00:00:00")
        source = DirectoryAssetSource(tmp_path)

        page = source.fetch_page(0, 10)

        assert [item.id for item in page.items] == ["trip/new.jpg", "mid.jpg", "old.jpg"]
        assert page.total_count == 3
        assert source.path_for("trip/new.jpg") == tmp_path / "trip" / "new.jpg"

    def test_ties_broken_by_id(self, tmp_path):
        for name in ("b.jpg", "a.jpg", "c.jpg"):
            _write_image(tmp_path / name, captured="2022:02:02 02:02:02")
        page = DirectoryAssetSource(tmp_path).fetch_page(0, 10)
        assert [item.id for item in page.items] == ["a.jpg", "b.jpg", "c.jpg"]

    def test_skips_hidden_and_non_images(self, tmp_path):
        _write_image(tmp_path / "keep.jpg")
        _write_image(tmp_path / ".cache" / "thumb.jpg")
        (tmp_path / "notes.txt").write_text("hi", encoding="utf-8")
        (tmp_path / "broken.png").write_text("nope", encoding="utf-8")

        source = DirectoryAssetSource(tmp_path)

        assert source.total_count() == 1
        assert source.path_for(".cache/thumb.jpg") is None

    def test_non_recursive(self, tmp_path):
        _write_image(tmp_path / "top.jpg")
        _write_image(tmp_path / "sub" / "deep.jpg")
        assert DirectoryAssetSource(tmp_path, recursive=False).total_count() == 1

    def test_paging_and_validation(self, tmp_path):
        for index in range(5):
            _write_image(tmp_path / f"{index}.jpg", captured=f"2022:01:0{index + 1} 00:00:00")
        source = DirectoryAssetSource(tmp_path)

        second = source.fetch_page(2, 2)
        assert second.offset == 2
        assert [item.id for item in second.items] == ["2.jpg", "1.jpg"]
        with pytest.raises(InvalidParametersError):
            source.fetch_page(5, 2)
        with pytest.raises(InvalidParametersError):
            source.fetch_page(0, 0)

    def test_listing_snapshot_until_refresh(self, tmp_path):
        _write_image(tmp_path / "a.jpg")
        source = DirectoryAssetSource(tmp_path)
        assert source.total_count() == 1

        _write_image(tmp_path / "b.jpg")
        assert source.total_count() == 1

        source.refresh()
        assert source.total_count() == 2

    def test_missing_root_is_empty(self, tmp_path):
        source = DirectoryAssetSource(tmp_path / "nowhere")
        assert source.fetch_page(0, 10).items == []

    def test_oversized_image_skipped(self, tmp_path, monkeypatch, inline_executor):
        _write_image(tmp_path / "ok.jpg", size=(10, 10))
        _write_image(tmp_path / "huge.png", size=(100, 100), fmt="PNG")
        # Anything above twice this many pixels is refused as a decompression bomb
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        source = DirectoryAssetSource(tmp_path)

        assert [item.id for item in source.fetch_page(0, 10).items] == ["ok.jpg"]

        window = PagedAssetWindow(source, page_size=10, max_window_size=20, executor=inline_executor)
        state = window.request_more().result()
        assert state.status is FetchStatus.IDLE
        assert [record.id for record in state.items] == ["ok.jpg"]


# ---------------------------------------------------------------------------
# InMemoryAssetSource
# ---------------------------------------------------------------------------

class TestInMemoryAssetSource:
    def test_pages(self, descriptors):
        source = InMemoryAssetSource(descriptors(7))
        page = source.fetch_page(5, 5)

        assert [item.id for item in page.items] == ["asset-5", "asset-6"]
        assert page.total_count == 7
        assert page.has_more is False
        assert source.fetch_count == 1

    def test_invalid_request_not_counted(self, descriptors):
        source = InMemoryAssetSource(descriptors(3))
        with pytest.raises(InvalidParametersError):
            source.fetch_page(-1, 5)
        assert source.fetch_count == 0

    def test_replace(self, descriptors):
        source = InMemoryAssetSource(descriptors(3))
        source.replace(descriptors(10))
        assert source.total_count() == 10
