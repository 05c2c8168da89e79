"""Tweet commands. Listing goes through FeedService.list_user_tweets."""

import logging

from database import object_id
from errors import Forbidden, NotFound, ValidationFailed
from schemas import Tweet, TweetOut

logger = logging.getLogger(__name__)

COLLECTION = "tweet"


def _clean(content) -> str:
    content = (content or "").strip()
    if not content:
        raise ValidationFailed("Content must not be empty")
    return content


class TweetService:
    def __init__(self, store):
        self.store = store

    async def _owned(self, tweet_id: str, actor_id: str, action: str) -> dict:
        doc = await self.store.get_document(COLLECTION, {"_id": object_id(tweet_id, "tweet id")})
        if not doc:
            raise NotFound("Tweet does not exist")
        if str(doc.get("owner")) != str(actor_id):
            raise Forbidden(f"You are not allowed to {action} this tweet")
        return doc

    async def create(self, owner_id: str, content: str) -> TweetOut:
        tweet = Tweet(content=_clean(content), owner=object_id(owner_id, "user id"))
        inserted_id = await self.store.create_document(COLLECTION, tweet)
        doc = await self.store.get_document(COLLECTION, {"_id": object_id(inserted_id)})
        return TweetOut.from_doc(doc)

    async def update(self, tweet_id: str, actor_id: str, content: str) -> TweetOut:
        content = _clean(content)
        doc = await self._owned(tweet_id, actor_id, "update")
        updated = await self.store.update_document(COLLECTION, {"_id": doc["_id"]}, {"$set": {"content": content}})
        if not updated:
            raise NotFound("Tweet does not exist")
        return TweetOut.from_doc(updated)

    async def delete(self, tweet_id: str, actor_id: str) -> None:
        doc = await self._owned(tweet_id, actor_id, "delete")
        await self.store.delete_document(COLLECTION, {"_id": doc["_id"]})
        logger.info("Tweet %s deleted by %s", tweet_id, actor_id)
