"""
Pagination engine

Runs an aggregation pipeline one page at a time. The total is counted over the
matching stages only, so it does not depend on the page window. Bad page
parameters are clamped, never rejected.
"""

import logging
import math
from typing import List, Optional

from schemas import FeedPage

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50


def clamp_page(page) -> int:
    try:
        page = int(page)
    except (TypeError, ValueError):
        return 1
    return page if page >= 1 else 1


def clamp_page_size(page_size) -> int:
    # Non-positive means "not given"
    try:
        page_size = int(page_size)
    except (TypeError, ValueError):
        return DEFAULT_PAGE_SIZE
    if page_size <= 0:
        return DEFAULT_PAGE_SIZE
    return min(page_size, MAX_PAGE_SIZE)


class PaginationEngine:
    def __init__(self, store):
        self.store = store

    async def paginate(
        self,
        collection: str,
        stages: List[dict],
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        count_stages: Optional[List[dict]] = None,
    ) -> FeedPage:
        page = clamp_page(page)
        page_size = clamp_page_size(page_size)
        skip = (page - 1) * page_size

        total = await self.store.count(collection, count_stages if count_stages is not None else stages)

        items = []
        if skip < total:
            items = await self.store.aggregate(
                collection, list(stages) + [{"$skip": skip}, {"$limit": page_size}]
            )
        else:
            logger.debug("page %s is past the end of %s results, skipping fetch", page, total)

        total_pages = math.ceil(total / page_size) if total else 0
        return FeedPage(
            items=items[:page_size],
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )
