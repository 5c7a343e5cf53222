from .models import (
    AssetDescriptor,
    AssetMetadata,
    AssetPage,
    AssetRecord,
    FetchStatus,
    ImageVariant,
    LoadState,
    TargetSize,
    WindowState,
)

__all__ = [
    "AssetDescriptor",
    "AssetMetadata",
    "AssetPage",
    "AssetRecord",
    "FetchStatus",
    "ImageVariant",
    "LoadState",
    "TargetSize",
    "WindowState",
]
