"""Argument validation for page and image requests."""

from __future__ import annotations

from typing import Optional

from ..config import MAX_IMAGE_DIMENSION, MAX_PAGE_LIMIT, MIN_IMAGE_DIMENSION, MIN_PAGE_LIMIT
from ..errors import InvalidParametersError
from .models import TargetSize


def validate_page_request(offset: int, limit: int, total_count: Optional[int] = None) -> None:
    """Reject a page request before any I/O happens.

    ``offset`` past the end of a non-empty collection is rejected as well.
    ``offset == 0`` on an empty library is a valid request for an empty page.
    """

    if offset < 0:
        raise InvalidParametersError("Offset must be non-negative")
    if not MIN_PAGE_LIMIT <= limit <= MAX_PAGE_LIMIT:
        raise InvalidParametersError(
            f"Limit must be between {MIN_PAGE_LIMIT} and {MAX_PAGE_LIMIT}"
        )
    if total_count is not None and offset > 0 and offset >= total_count:
        raise InvalidParametersError(f"Offset {offset} exceeds total count {total_count}")


def validate_target_size(size: Optional[TargetSize]) -> None:
    if size is None:
        return
    width, height = size
    for value in (width, height):
        if not MIN_IMAGE_DIMENSION <= value <= MAX_IMAGE_DIMENSION:
            raise InvalidParametersError(
                "Invalid dimensions. Width and height must be between "
                f"{MIN_IMAGE_DIMENSION} and {MAX_IMAGE_DIMENSION}"
            )
