"""
Feed service

Read-only entry point used by the API layer. Validates raw query parameters,
builds the pipeline and pages through it. Holds no state between calls.
"""

import logging
from typing import Optional

from config import settings as default_settings
from database import is_well_formed_id
from enrichment import owner_summary
from errors import InvalidReference
from feed_query import SCORE_FIELD, FeedQueryBuilder
from pagination import PaginationEngine, clamp_page, clamp_page_size
from schemas import FeedEntry, FeedPage, FeedQuery, TweetEntry

logger = logging.getLogger(__name__)

VIDEO_COLLECTION = "video"
TWEET_COLLECTION = "tweet"


class FeedService:
    def __init__(self, store, settings=None):
        settings = settings or default_settings
        self.store = store
        self.engine = PaginationEngine(store)
        self.videos = FeedQueryBuilder(settings.search_backend, settings.search_index)
        self.tweets = FeedQueryBuilder(base_filter={})

    @staticmethod
    def parse_query(
        query: Optional[str] = None,
        user_id: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_type: Optional[str] = None,
        page=1,
        limit=None,
    ) -> FeedQuery:
        if user_id is not None and user_id != "" and not is_well_formed_id(user_id):
            raise InvalidReference("Invalid user id")
        return FeedQuery(
            search=(query or "").strip() or None,
            owner_id=user_id or None,
            sort_by=(sort_by or "").strip() or None,
            sort_type=sort_type,
            page=clamp_page(page),
            page_size=clamp_page_size(limit),
        )

    async def list_videos(self, query: FeedQuery) -> FeedPage[FeedEntry]:
        pipeline = self.videos.build(query)
        logger.debug(
            "video feed: search=%r owner=%s sort=%s page=%s size=%s",
            query.search, query.owner_id, pipeline.sort, pipeline.page, pipeline.page_size,
        )
        page = await self.engine.paginate(
            VIDEO_COLLECTION,
            pipeline.stages,
            pipeline.page,
            pipeline.page_size,
            count_stages=pipeline.count_stages,
        )
        items = [
            FeedEntry.from_doc(doc, score=doc.get(SCORE_FIELD), owner=owner_summary(doc))
            for doc in page.items
        ]
        return FeedPage[FeedEntry](**{**page.model_dump(exclude={"items"}), "items": items})

    async def list_user_tweets(self, user_id: str, page=1, limit=None) -> FeedPage[TweetEntry]:
        if not is_well_formed_id(user_id):
            raise InvalidReference("Invalid user id")
        query = FeedQuery(owner_id=user_id, page=clamp_page(page), page_size=clamp_page_size(limit))
        pipeline = self.tweets.build(query)
        result = await self.engine.paginate(
            TWEET_COLLECTION,
            pipeline.stages,
            pipeline.page,
            pipeline.page_size,
            count_stages=pipeline.count_stages,
        )
        items = [TweetEntry.from_doc(doc, owner=owner_summary(doc)) for doc in result.items]
        return FeedPage[TweetEntry](**{**result.model_dump(exclude={"items"}), "items": items})
