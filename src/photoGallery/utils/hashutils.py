"""Hashing utilities."""

from __future__ import annotations

from typing import Optional

import xxhash

from ..domain.models import ImageVariant, TargetSize

_KEY_SEPARATOR = ":"


def make_cache_key(
    asset_id: str,
    variant: ImageVariant,
    size: Optional[TargetSize] = None,
) -> str:
    """Return the deterministic cache key for one image request.

    The key is ``"<variant>:<xxh3-64 hex>"``.  The variant stays readable so
    the cache can route the entry to its partition, and the hash covers the
    asset id and the requested dimensions.  ``size=None`` means the
    original dimensions.
    """

    width, height = size if size is not None else (0, 0)
    digest = xxhash.xxh3_64_hexdigest(f"{asset_id}_{variant.value}_{width}_{height}")
    return f"{variant.value}{_KEY_SEPARATOR}{digest}"


def variant_of_key(key: str) -> ImageVariant:
    """Return the variant encoded in *key*; raise ``ValueError`` if malformed."""

    prefix, sep, _ = key.partition(_KEY_SEPARATOR)
    if not sep:
        raise ValueError(f"Malformed cache key: {key!r}")
    return ImageVariant(prefix)
