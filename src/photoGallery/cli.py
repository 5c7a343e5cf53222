"""Typer-based CLI entry point."""

from __future__ import annotations

import dataclasses
import logging
from functools import wraps
from pathlib import Path
from typing import Optional

import typer
from rich import print
from rich.table import Table

from .appctx import build_directory_gallery
from .application.services.favorite_registry import FavoriteRegistry
from .config import (
    FAVORITES_FILE_NAME,
    MAX_PAGE_LIMIT,
    MIN_PAGE_LIMIT,
    MIN_WINDOW_PAGES,
    THUMBNAIL_SIZE,
)
from .domain.models import FetchStatus, ImageVariant
from .errors import (
    AssetNotFoundError,
    GalleryError,
    InvalidParametersError,
    PageFetchError,
    PermissionDeniedError,
)
from .infrastructure.services.image_fetcher import PillowImageFetcher
from .infrastructure.sources.directory_source import DirectoryAssetSource
from .infrastructure.stores.favorites_store import JsonFavoritesStore
from .settings.manager import GallerySettings
from .utils.logging import ensure_console_logger, get_logger

app = typer.Typer(help="Browse a folder of photos through a paged, cached window")


def _handle_errors(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (AssetNotFoundError, InvalidParametersError, PageFetchError, PermissionDeniedError) as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(1) from exc
        except GalleryError as exc:
            typer.echo(f"Unexpected error: {exc}", err=True)
            raise typer.Exit(1) from exc

    return wrapper


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress to stdout.")) -> None:
    if verbose:
        ensure_console_logger(get_logger(), "photoGallery.cli", level=logging.DEBUG)


@app.command()
@_handle_errors
def browse(
    library: Path = typer.Argument(..., exists=True, file_okay=False),
    pages: int = typer.Option(1, "--pages", "-n", min=1, help="Number of pages to load."),
    page_size: Optional[int] = typer.Option(
        None, "--page-size", min=MIN_PAGE_LIMIT, max=MAX_PAGE_LIMIT, help="Items per page."
    ),
) -> None:
    """Page through LIBRARY and print what the window holds."""

    settings = GallerySettings.defaults()
    size = page_size if page_size is not None else settings.page_size
    # Pages are requested back to back and nothing is drawn, so neither the
    # debounce nor thumbnail preloading applies here.
    settings = dataclasses.replace(
        settings,
        page_size=size,
        max_window_size=max(settings.max_window_size, MIN_WINDOW_PAGES * size),
        debounce_sec=0.0,
        preload_count=0,
    )
    context = build_directory_gallery(library, settings=settings)
    try:
        for _ in range(pages):
            future = context.window.request_more()
            if future is None:
                if context.window.access_granted is False:
                    raise PermissionDeniedError("Photo access is required")
                break
            state = future.result()
            if state.status is FetchStatus.ERROR:
                raise PageFetchError(f"Failed to load photos: {state.error_message}")

        state = context.window.snapshot()
        table = Table(title=str(library))
        table.add_column("#", justify="right")
        table.add_column("Asset")
        table.add_column("Size", justify="right")
        table.add_column("Created")
        table.add_column("★", justify="center")
        for record in state.items:
            metadata = record.metadata
            table.add_row(
                str(record.global_index),
                record.id,
                f"{metadata.width}×{metadata.height}",
                metadata.created_at.isoformat(timespec="seconds"),
                "★" if context.favorites.contains(record.id) else "",
            )
        print(table)
        print(f"[green]{context.viewmodel.loading_status.value}")
        if state.has_more:
            print("[dim]More photos available")
    finally:
        context.shutdown()


@app.command()
@_handle_errors
def thumbnail(
    library: Path = typer.Argument(..., exists=True, file_okay=False),
    asset_id: str = typer.Argument(..., help="Path of the photo relative to LIBRARY."),
    output: Path = typer.Argument(..., dir_okay=False),
    width: int = typer.Option(THUMBNAIL_SIZE[0], "--width"),
    height: int = typer.Option(THUMBNAIL_SIZE[1], "--height"),
) -> None:
    """Render one thumbnail to OUTPUT as JPEG."""

    fetcher = PillowImageFetcher(DirectoryAssetSource(library))
    blob = fetcher.fetch(asset_id, ImageVariant.THUMBNAIL, (width, height))
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(blob)
    print(f"[green]Wrote {width}×{height} thumbnail of {asset_id} to {output}")


@app.command()
@_handle_errors
def favorite(
    library: Path = typer.Argument(..., exists=True, file_okay=False),
    asset_id: str = typer.Argument(..., help="Path of the photo relative to LIBRARY."),
) -> None:
    """Toggle the favorite flag of one photo."""

    source = DirectoryAssetSource(library)
    if source.path_for(asset_id) is None:
        raise AssetNotFoundError(f"Asset not found: {asset_id}")
    registry = FavoriteRegistry(JsonFavoritesStore(library / FAVORITES_FILE_NAME))
    try:
        is_favorite = registry.toggle(asset_id)
    finally:
        registry.shutdown()
    if is_favorite:
        print(f"[green]Added {asset_id} to favorites")
    else:
        print(f"[yellow]Removed {asset_id} from favorites")


@app.command()
@_handle_errors
def favorites(library: Path = typer.Argument(..., exists=True, file_okay=False)) -> None:
    """List favorite photos."""

    registry = FavoriteRegistry(JsonFavoritesStore(library / FAVORITES_FILE_NAME))
    try:
        ids = sorted(registry.favorite_ids)
    finally:
        registry.shutdown()
    if not ids:
        print("[dim]No favorites")
        return
    for asset_id in ids:
        print(asset_id)


if __name__ == "__main__":  # pragma: no cover - manual invocation
    app()
