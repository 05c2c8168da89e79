"""
Video commands: publish, fetch, update, delete, publish toggle.

Writes that touch the media store are done in two phases: stage the files,
commit the record, and if the commit fails delete what was staged. A failed
compensating delete is logged and never replaces the original error.
Deleting a video removes the record first, then its media the same way.
"""

import logging
from typing import Optional

from fastapi import UploadFile

from database import object_id
from errors import Forbidden, NotFound, ValidationFailed
from media import MediaStore, StoredMedia
from schemas import Video, VideoOut

logger = logging.getLogger(__name__)

COLLECTION = "video"


class VideoService:
    def __init__(self, store, media: MediaStore):
        self.store = store
        self.media = media

    async def _compensate(self, staged: StoredMedia, resource_type: str) -> None:
        try:
            await self.media.delete(staged.public_id, resource_type)
        except Exception:
            logger.exception("Compensating delete failed for %s %s", resource_type, staged.public_id)

    async def _owned(self, video_id: str, actor_id: str, action: str) -> dict:
        _id = object_id(video_id, "video id")
        doc = await self.store.get_document(COLLECTION, {"_id": _id})
        if not doc:
            raise NotFound("Video does not exist")
        if str(doc.get("owner")) != str(actor_id):
            raise Forbidden(f"You are not allowed to {action} this video")
        return doc

    async def publish(
        self,
        owner_id: str,
        title: Optional[str],
        description: Optional[str],
        video_file: Optional[UploadFile],
        thumbnail: Optional[UploadFile],
        duration: Optional[float] = None,
    ) -> VideoOut:
        title = (title or "").strip()
        description = (description or "").strip()
        if not title or not description:
            raise ValidationFailed("Title and description must not be empty")
        if video_file is None:
            raise ValidationFailed("Video file is required")
        if thumbnail is None:
            raise ValidationFailed("Thumbnail file is required")
        owner = object_id(owner_id, "user id")

        video = await self.media.upload(video_file, "videos")
        try:
            thumb = await self.media.upload(thumbnail, "thumbnails")
        except Exception:
            await self._compensate(video, "video")
            raise

        doc = Video(
            title=title,
            description=description,
            video_url=video.url,
            video_public_id=video.public_id,
            thumbnail_url=thumb.url,
            thumbnail_public_id=thumb.public_id,
            duration=video.duration if video.duration is not None else (duration or 0),
            owner=owner,
        )
        try:
            inserted_id = await self.store.create_document(COLLECTION, doc)
        except Exception:
            await self._compensate(video, "video")
            await self._compensate(thumb, "image")
            raise

        logger.info("Video %s published by %s", inserted_id, owner_id)
        created = await self.store.get_document(COLLECTION, {"_id": object_id(inserted_id)})
        return VideoOut.from_doc(created)

    async def get(self, video_id: str, viewer_id: Optional[str] = None) -> VideoOut:
        _id = object_id(video_id, "video id")
        doc = await self.store.get_document(COLLECTION, {"_id": _id})
        # Unpublished videos exist only for their owner
        if not doc or (not doc.get("is_published", True) and str(doc.get("owner")) != str(viewer_id)):
            raise NotFound("Video does not exist")
        doc = await self.store.update_document(COLLECTION, {"_id": _id}, {"$inc": {"views": 1}})
        if not doc:
            raise NotFound("Video does not exist")
        return VideoOut.from_doc(doc)

    async def update(
        self,
        video_id: str,
        actor_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        thumbnail: Optional[UploadFile] = None,
    ) -> VideoOut:
        doc = await self._owned(video_id, actor_id, "update")

        changes = {}
        if title and title.strip():
            changes["title"] = title.strip()
        if description and description.strip():
            changes["description"] = description.strip()

        staged = None
        if thumbnail is not None:
            staged = await self.media.upload(thumbnail, "thumbnails")
            changes["thumbnail_url"] = staged.url
            changes["thumbnail_public_id"] = staged.public_id

        if not changes:
            raise ValidationFailed("Nothing to update")

        try:
            updated = await self.store.update_document(COLLECTION, {"_id": doc["_id"]}, {"$set": changes})
        except Exception:
            if staged:
                await self._compensate(staged, "image")
            raise
        if not updated:
            if staged:
                await self._compensate(staged, "image")
            raise NotFound("Video does not exist")

        if staged and doc.get("thumbnail_public_id"):
            await self._compensate(
                StoredMedia(url=doc.get("thumbnail_url", ""), public_id=doc["thumbnail_public_id"]), "image"
            )
        return VideoOut.from_doc(updated)

    async def delete(self, video_id: str, actor_id: str) -> None:
        doc = await self._owned(video_id, actor_id, "delete")
        # Record first, then media; media failures are only logged
        await self.store.delete_document(COLLECTION, {"_id": doc["_id"]})
        for field, resource_type in (("video_public_id", "video"), ("thumbnail_public_id", "image")):
            if doc.get(field):
                await self._compensate(StoredMedia(url="", public_id=doc[field]), resource_type)
        logger.info("Video %s deleted by %s", video_id, actor_id)

    async def toggle_publish(self, video_id: str, actor_id: str) -> VideoOut:
        doc = await self._owned(video_id, actor_id, "change the publish status of")
        updated = await self.store.update_document(
            COLLECTION,
            {"_id": doc["_id"]},
            {"$set": {"is_published": not doc.get("is_published", True)}},
        )
        if not updated:
            raise NotFound("Video does not exist")
        return VideoOut.from_doc(updated)
