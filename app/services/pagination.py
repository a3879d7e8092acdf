import math
from typing import Optional, Tuple

from app.config import Settings, get_settings
from app.schemas import PostPage
from app.services.query_builder import PostQuery

# Keeps OFFSET well inside a 64-bit integer
MAX_PAGE = 1_000_000_000


def normalize_paging(page: Optional[int], limit: Optional[int], settings: Settings) -> Tuple[int, int]:
    """Clamp page to [1, MAX_PAGE] and limit to [1, max_page_size]; missing values take the defaults."""
    page = min(max(page or 1, 1), MAX_PAGE)
    if limit is None:
        limit = settings.default_page_size
    limit = min(max(limit, 1), settings.max_page_size)
    return page, limit


def paginate(repository, query: PostQuery, page: Optional[int] = 1, limit: Optional[int] = None,
             settings: Optional[Settings] = None) -> PostPage:
    """
    One page of ``query`` plus page metadata.

    Items and total come from two independent reads of the same predicate, so
    they can disagree while posts are being written. Pages past the end are
    empty, not errors.
    """
    settings = settings or get_settings()
    page, limit = normalize_paging(page, limit, settings)
    skip = (page - 1) * limit

    items = repository.find(query, skip=skip, limit=limit)
    total = repository.count(query)

    return PostPage(
        items=items,
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit),
    )
