"""Schema helpers for the gallery settings file."""

from __future__ import annotations

import os
from copy import deepcopy
from typing import Any

from jsonschema import Draft202012Validator, ValidationError

from ..config import (
    DEFAULT_MAX_WINDOW_SIZE,
    DEFAULT_PAGE_SIZE,
    FULL_IMAGE_CACHE_COST_LIMIT,
    FULL_IMAGE_CACHE_LIMIT,
    LOAD_MORE_DEBOUNCE_SEC,
    MAX_IMAGE_DIMENSION,
    MAX_PAGE_LIMIT,
    MIN_IMAGE_DIMENSION,
    MIN_PAGE_LIMIT,
    MIN_WINDOW_PAGES,
    PRELOAD_COUNT,
    THUMBNAIL_CACHE_LIMIT,
    THUMBNAIL_SIZE,
)

_DIMENSION = {"type": "integer", "minimum": MIN_IMAGE_DIMENSION, "maximum": MAX_IMAGE_DIMENSION}

SETTINGS_SCHEMA: dict[str, Any] = {
    "$id": "photoGallery/settings.schema.json",
    "type": "object",
    "required": ["schema", "paging", "cache", "thumbnail"],
    "properties": {
        "schema": {"const": "photoGallery/settings@1"},
        "library_path": {"type": ["string", "null"]},
        "paging": {
            "type": "object",
            "properties": {
                "page_size": {"type": "integer", "minimum": MIN_PAGE_LIMIT, "maximum": MAX_PAGE_LIMIT},
                "max_window_size": {"type": "integer", "minimum": 2},
                "debounce_ms": {"type": "integer", "minimum": 0},
            },
            "additionalProperties": True,
        },
        "preload": {
            "type": "object",
            "properties": {
                "count": {"type": "integer", "minimum": 0},
            },
            "additionalProperties": True,
        },
        "cache": {
            "type": "object",
            "properties": {
                "thumbnail_capacity": {"type": "integer"},
                "full_image_capacity": {"type": "integer"},
                "full_image_cost_limit": {"type": ["integer", "null"]},
            },
            "additionalProperties": True,
        },
        "thumbnail": {
            "type": "object",
            "properties": {
                "width": _DIMENSION,
                "height": _DIMENSION,
            },
            "additionalProperties": True,
        },
    },
    "additionalProperties": True,
}

DEFAULT_SETTINGS: dict[str, Any] = {
    "schema": "photoGallery/settings@1",
    "library_path": None,
    "paging": {
        "page_size": DEFAULT_PAGE_SIZE,
        "max_window_size": DEFAULT_MAX_WINDOW_SIZE,
        "debounce_ms": int(LOAD_MORE_DEBOUNCE_SEC * 1000),
    },
    "preload": {
        "count": PRELOAD_COUNT,
    },
    "cache": {
        "thumbnail_capacity": THUMBNAIL_CACHE_LIMIT,
        "full_image_capacity": FULL_IMAGE_CACHE_LIMIT,
        "full_image_cost_limit": FULL_IMAGE_CACHE_COST_LIMIT,
    },
    "thumbnail": {
        "width": THUMBNAIL_SIZE[0],
        "height": THUMBNAIL_SIZE[1],
    },
}

_SECTIONS = ("paging", "preload", "cache", "thumbnail")

_validator = Draft202012Validator(SETTINGS_SCHEMA)


def _check_window(data: dict[str, Any]) -> None:
    paging = data["paging"]
    page_size = paging["page_size"]
    max_window_size = paging["max_window_size"]
    if max_window_size < MIN_WINDOW_PAGES * page_size:
        raise ValidationError(
            f"paging.max_window_size ({max_window_size}) must be at least "
            f"{MIN_WINDOW_PAGES}x paging.page_size ({page_size})"
        )


def merge_with_defaults(data: dict[str, Any] | None) -> dict[str, Any]:
    """Merge *data* with :data:`DEFAULT_SETTINGS` and validate the result."""

    merged = deepcopy(DEFAULT_SETTINGS)
    if data:
        for key, value in data.items():
            if key in _SECTIONS and isinstance(value, dict):
                target = merged.setdefault(key, {})
                for sub_key, sub_value in value.items():
                    target[sub_key] = sub_value
                continue
            if key == "library_path" and value not in {None, ""}:
                try:
                    merged[key] = os.fspath(value)
                except TypeError:
                    continue
                continue
            merged[key] = value
    validate_settings(merged)
    return merged


def validate_settings(data: dict[str, Any]) -> None:
    """Validate *data* against the settings schema and the window rule."""

    _validator.validate(data)
    _check_window(data)


__all__ = ["DEFAULT_SETTINGS", "SETTINGS_SCHEMA", "merge_with_defaults", "validate_settings"]
