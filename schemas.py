"""
Database Schemas for the video sharing backend

Each Pydantic model maps to a MongoDB collection. The collection name is the lowercase of the class name.

Collections:
- User -> user (referenced only, owned by the auth service)
- Video -> video
- Tweet -> tweet

The *Out / *Entry models are response shapes built from stored documents.
"""

from datetime import datetime
from typing import Any, Generic, List, Optional, TypeVar

from bson import ObjectId
from pydantic import BaseModel, Field

T = TypeVar("T")


class User(BaseModel):
    username: str = Field(..., min_length=3, max_length=30)
    email: str
    fullname: str
    avatar_url: str
    cover_image_url: Optional[str] = None


class Video(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    video_url: str
    video_public_id: str
    thumbnail_url: str
    thumbnail_public_id: str
    duration: float = Field(0, ge=0, description="Length in seconds")
    views: int = Field(0, ge=0)
    is_published: bool = True
    owner: Any = Field(..., description="ObjectId of the owning user")


class Tweet(BaseModel):
    content: str = Field(..., min_length=1)
    owner: Any = Field(..., description="ObjectId of the owning user")


# -------------------- Response shapes --------------------

def _str_id(value) -> Optional[str]:
    return str(value) if isinstance(value, ObjectId) else value


class OwnerSummary(BaseModel):
    id: str
    username: Optional[str] = None
    fullname: Optional[str] = None
    avatar_url: Optional[str] = None

    @classmethod
    def from_doc(cls, doc: Optional[dict]) -> Optional["OwnerSummary"]:
        if not doc:
            return None
        return cls(
            id=_str_id(doc.get("_id")),
            username=doc.get("username"),
            fullname=doc.get("fullname"),
            avatar_url=doc.get("avatar_url"),
        )


class VideoOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    video_url: str
    thumbnail_url: str
    duration: float = 0
    views: int = 0
    is_published: bool = True
    owner_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, doc: dict, **extra):
        return cls(
            id=_str_id(doc["_id"]),
            title=doc.get("title", ""),
            description=doc.get("description"),
            video_url=doc.get("video_url", ""),
            thumbnail_url=doc.get("thumbnail_url", ""),
            duration=doc.get("duration") or 0,
            views=doc.get("views", 0),
            is_published=doc.get("is_published", True),
            owner_id=_str_id(doc.get("owner")),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
            **extra,
        )


class FeedEntry(VideoOut):
    score: Optional[float] = None
    owner: Optional[OwnerSummary] = None


class TweetOut(BaseModel):
    id: str
    content: str
    owner_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, doc: dict, **extra):
        return cls(
            id=_str_id(doc["_id"]),
            content=doc.get("content", ""),
            owner_id=_str_id(doc.get("owner")),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
            **extra,
        )


class TweetEntry(TweetOut):
    owner: Optional[OwnerSummary] = None


# -------------------- Feed --------------------

class FeedQuery(BaseModel):
    search: Optional[str] = None
    owner_id: Optional[str] = None
    sort_by: Optional[str] = None
    sort_type: Optional[str] = None
    page: int = 1
    page_size: int = 10


class FeedPage(BaseModel, Generic[T]):
    items: List[T] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 10
    total_pages: int = 0
    has_next_page: bool = False
    has_prev_page: bool = False
