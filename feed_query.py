"""
Feed query builder

Turns a FeedQuery into aggregation stages in a fixed order:

    search -> filter -> sort -> owner enrichment

Pagination is not part of the pipeline; the builder only normalizes the page
parameters and leaves the window to the PaginationEngine. Sort field names are
passed to the store as given. An unknown field sorts every document as
missing, which then falls back to the _id tie-breaker.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from database import object_id
from enrichment import owner_lookup_stages
from pagination import clamp_page, clamp_page_size
from schemas import FeedQuery

SCORE_FIELD = "score"
SEARCH_PATHS = ["title", "description"]


class FeedPipeline(BaseModel):
    search: List[dict] = Field(default_factory=list)
    filters: List[dict] = Field(default_factory=list)
    sort: List[dict] = Field(default_factory=list)
    enrich: List[dict] = Field(default_factory=list)
    page: int = 1
    page_size: int = 10

    @property
    def stages(self) -> List[dict]:
        return self.search + self.filters + self.sort + self.enrich

    @property
    def count_stages(self) -> List[dict]:
        return self.search + self.filters


def sort_direction(sort_type: Optional[str]) -> int:
    return 1 if (sort_type or "").lower() == "asc" else -1


def search_stages(text: str, backend: str = "atlas", index: str = "default") -> List[dict]:
    if backend == "text":
        return [
            {"$match": {"$text": {"$search": text}}},
            {"$addFields": {SCORE_FIELD: {"$meta": "textScore"}}},
        ]
    return [
        {
            "$search": {
                "index": index,
                "text": {
                    "query": text,
                    "path": SEARCH_PATHS,
                    "fuzzy": {"maxEdits": 2, "prefixLength": 1},
                },
            }
        },
        {"$addFields": {SCORE_FIELD: {"$meta": "searchScore"}}},
    ]


class FeedQueryBuilder:
    def __init__(
        self,
        search_backend: str = "atlas",
        search_index: str = "default",
        base_filter: Optional[Dict] = None,
        owner_field: str = "owner",
        enrich: bool = True,
    ):
        self.search_backend = search_backend
        self.search_index = search_index
        self.base_filter = {"is_published": True} if base_filter is None else base_filter
        self.owner_field = owner_field
        self.enrich = enrich

    def build(self, query: FeedQuery) -> FeedPipeline:
        pipeline = FeedPipeline(
            page=clamp_page(query.page),
            page_size=clamp_page_size(query.page_size),
        )

        search = (query.search or "").strip()
        if search:
            pipeline.search = search_stages(search, self.search_backend, self.search_index)

        match = {}
        if query.owner_id:
            match[self.owner_field] = object_id(query.owner_id, "owner id")
        # Applied last so no caller-supplied key can override it
        match.update(self.base_filter)
        pipeline.filters = [{"$match": match}]

        pipeline.sort = [{"$sort": self.sort_spec(query, ranked=bool(search))}]

        if self.enrich:
            pipeline.enrich = owner_lookup_stages(self.owner_field)
        return pipeline

    def sort_spec(self, query: FeedQuery, ranked: bool = False) -> Dict[str, int]:
        if query.sort_by:
            direction = sort_direction(query.sort_type)
            spec = {query.sort_by: direction}
        elif ranked:
            direction = -1
            spec = {SCORE_FIELD: -1, "created_at": -1}
        else:
            direction = -1
            spec = {"created_at": -1}
        spec.setdefault("_id", direction)
        return spec
