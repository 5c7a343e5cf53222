"""Tests for GalleryViewModel wired through build_gallery."""

from __future__ import annotations

from unittest.mock import Mock

from photoGallery.appctx import build_gallery
from photoGallery.application.services.permissions import AuthorizationStatus, StaticPermissionService
from photoGallery.domain.models import LoadState
from photoGallery.errors import ImageFetchFailedError
from photoGallery.gui.viewmodels.detail_viewmodel import DetailViewModel
from photoGallery.infrastructure.sources.memory_source import InMemoryAssetSource


def _fetcher(failing=()):
    def fetch(asset_id, variant, size):
        if asset_id in failing:
            raise ImageFetchFailedError("decode error")
        return f"img:{asset_id}".encode()

    fetcher = Mock()
    fetcher.fetch.side_effect = fetch
    return fetcher


def _build(source, inline_executor, manual_executor, clock, **kwargs):
    kwargs.setdefault("fetcher", _fetcher())
    fetcher = kwargs.pop("fetcher")
    return build_gallery(
        source,
        fetcher,
        page_executor=inline_executor,
        image_executor=manual_executor,
        favorites_executor=inline_executor,
        clock=clock,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Permission and first load
# ---------------------------------------------------------------------------

class TestPermission:
    def test_authorized_loads_first_page(self, inline_executor, manual_executor, clock, descriptors):
        ctx = _build(InMemoryAssetSource(descriptors(120)), inline_executor, manual_executor, clock)
        vm = ctx.viewmodel

        assert vm.check_permission() is True

        assert len(vm.items.value) == 50
        assert vm.total_count.value == 120
        assert vm.has_more.value is True
        assert vm.loading.value is False
        assert vm.permission_denied.value is False
        assert vm.loading_status.value == "Loaded 50 of 120 photos"

    def test_denied_shows_gate_without_fetching(self, inline_executor, manual_executor, clock, descriptors):
        source = InMemoryAssetSource(descriptors(10))
        permissions = StaticPermissionService(
            AuthorizationStatus.NOT_DETERMINED, on_request=AuthorizationStatus.DENIED
        )
        ctx = _build(source, inline_executor, manual_executor, clock, permissions=permissions)
        vm = ctx.viewmodel

        assert vm.check_permission() is False

        assert vm.permission_denied.value is True
        assert vm.loading_status.value == "Photo access is required"
        assert source.fetch_count == 0

    def test_granting_later_loads(self, inline_executor, manual_executor, clock, descriptors):
        permissions = StaticPermissionService(AuthorizationStatus.DENIED)
        ctx = _build(
            InMemoryAssetSource(descriptors(10)), inline_executor, manual_executor, clock, permissions=permissions
        )
        vm = ctx.viewmodel
        vm.check_permission()

        permissions.set_status(AuthorizationStatus.LIMITED)
        assert vm.request_permission() is True

        assert vm.permission_denied.value is False
        assert len(vm.items.value) == 10

    def test_revoked_access_surfaces_through_window(self, inline_executor, manual_executor, clock, descriptors):
        permissions = StaticPermissionService()
        ctx = _build(
            InMemoryAssetSource(descriptors(120)), inline_executor, manual_executor, clock, permissions=permissions
        )
        vm = ctx.viewmodel
        vm.check_permission()
        clock.advance(1.0)

        permissions.set_status(AuthorizationStatus.DENIED)
        assert vm.load_more() is None

        assert vm.permission_denied.value is True
        assert vm.loading_status.value == "Photo access is required"
        assert len(vm.items.value) == 50


# ---------------------------------------------------------------------------
# Paging through the view model
# ---------------------------------------------------------------------------

class TestPaging:
    def test_new_page_preloads_thumbnails(self, inline_executor, manual_executor, clock, descriptors):
        ctx = _build(InMemoryAssetSource(descriptors(120)), inline_executor, manual_executor, clock)
        vm = ctx.viewmodel

        vm.load_initial()

        assert manual_executor.pending == 10
        assert vm.is_photo_loading("asset-0")
        assert vm.load_state("asset-10") is LoadState.PENDING

        manual_executor.run_all()
        assert vm.load_state("asset-0") is LoadState.LOADED
        assert vm.thumbnail("asset-0") == b"img:asset-0"

    def test_item_near_end_requests_next_page(self, inline_executor, manual_executor, clock, descriptors):
        ctx = _build(InMemoryAssetSource(descriptors(120)), inline_executor, manual_executor, clock)
        vm = ctx.viewmodel
        vm.load_initial()
        clock.advance(1.0)

        vm.item_visible(10)
        assert len(vm.items.value) == 50

        future = vm.item_visible(45)
        assert future is not None
        assert len(vm.items.value) == 100
        assert vm.loading_status.value == "Loaded 100 of 120 photos"

    def test_item_outside_window(self, inline_executor, manual_executor, clock, descriptors):
        ctx = _build(InMemoryAssetSource(descriptors(20)), inline_executor, manual_executor, clock)
        ctx.viewmodel.load_initial()
        assert ctx.viewmodel.item_visible(500) is None

    def test_page_failure_and_retry(self, inline_executor, manual_executor, clock, descriptors):
        source = Mock()
        page = InMemoryAssetSource(descriptors(5)).fetch_page(0, 50)
        source.fetch_page.side_effect = [OSError("offline"), page]
        ctx = _build(source, inline_executor, manual_executor, clock)
        vm = ctx.viewmodel

        vm.load_initial()
        assert vm.loading_status.value == "Failed to load photos"
        assert vm.error_message.value == "offline"

        vm.retry()
        assert vm.error_message.value is None
        assert vm.loading_status.value == "Loaded 5 of 5 photos"
        assert vm.has_more.value is False

    def test_items_property_notifies(self, inline_executor, manual_executor, clock, descriptors):
        ctx = _build(InMemoryAssetSource(descriptors(60)), inline_executor, manual_executor, clock)
        vm = ctx.viewmodel
        sizes = []
        vm.items.changed.connect(lambda new, old: sizes.append(len(new)))

        vm.load_initial()

        assert sizes[-1] == 50


# ---------------------------------------------------------------------------
# Per-item state and favorites
# ---------------------------------------------------------------------------

class TestItems:
    def test_image_error_tracked_per_item(self, inline_executor, manual_executor, clock, descriptors):
        ctx = _build(
            InMemoryAssetSource(descriptors(20)),
            inline_executor,
            manual_executor,
            clock,
            fetcher=_fetcher(failing={"asset-1"}),
        )
        vm = ctx.viewmodel
        changed = []
        vm.item_changed.connect(lambda asset_id, index: changed.append((asset_id, index)))

        vm.load_initial()
        manual_executor.run_all()

        assert vm.has_image_error("asset-1")
        assert not vm.has_image_error("asset-0")
        assert ("asset-1", 1) in changed
        assert vm.load_state("missing") is None

    def test_toggle_favorite(self, inline_executor, manual_executor, clock, descriptors):
        ctx = _build(InMemoryAssetSource(descriptors(5)), inline_executor, manual_executor, clock)
        vm = ctx.viewmodel
        toggled = []
        vm.favorite_changed.connect(lambda asset_id, value: toggled.append((asset_id, value)))

        assert vm.toggle_favorite("asset-2") is True
        assert vm.is_favorite("asset-2")
        assert toggled == [("asset-2", True)]

    def test_open_detail(self, inline_executor, manual_executor, clock, descriptors):
        ctx = _build(InMemoryAssetSource(descriptors(5)), inline_executor, manual_executor, clock)
        vm = ctx.viewmodel
        vm.load_initial()

        detail = vm.open_detail("asset-3")

        assert isinstance(detail, DetailViewModel)
        assert detail.record is ctx.window.find("asset-3")
        assert vm.open_detail("nope") is None

    def test_dispose_stops_updates(self, inline_executor, manual_executor, clock, descriptors):
        ctx = _build(InMemoryAssetSource(descriptors(120)), inline_executor, manual_executor, clock)
        vm = ctx.viewmodel
        vm.load_initial()
        vm.dispose()
        clock.advance(1.0)

        ctx.window.request_more()

        assert len(vm.items.value) == 50
        assert len(ctx.window.items) == 100
