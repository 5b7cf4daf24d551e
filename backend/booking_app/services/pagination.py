"""Page/limit parsing and response metadata for booking listings."""
import math
from typing import Any

from booking_app.core.constants import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, MAX_PAGE, MAX_PAGE_SIZE


def _to_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def pagination_params(
    page: Any = None,
    limit: Any = None,
    default_limit: int = DEFAULT_PAGE_SIZE,
    max_limit: int = MAX_PAGE_SIZE,
) -> tuple[int, int]:
    """(page, limit) with 1 <= page <= MAX_PAGE and 1 <= limit <= max_limit. Garbage falls back to defaults."""
    page = min(MAX_PAGE, max(1, _to_int(page, DEFAULT_PAGE)))
    limit = min(max_limit, max(1, _to_int(limit, default_limit)))
    return page, limit


def offset_for(page: int, limit: int) -> int:
    return (page - 1) * limit


def pagination_metadata(page: int, limit: int, total: int) -> dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": total_pages,
        "has_next_page": page < total_pages,
        "has_prev_page": page > 1,
    }
