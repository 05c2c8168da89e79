"""
Media storage

Video and thumbnail binaries live outside the document store. LocalMediaStore
writes them under the upload directory, which the app serves at /static.
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

from bson import ObjectId
from fastapi import UploadFile
from pydantic import BaseModel

from errors import MediaStoreError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = {"videos": ".mp4", "thumbnails": ".jpg"}


class StoredMedia(BaseModel):
    url: str
    public_id: str
    duration: Optional[float] = None


class MediaStore(ABC):
    @abstractmethod
    async def upload(self, file: UploadFile, folder: str) -> StoredMedia:
        ...

    @abstractmethod
    async def delete(self, public_id: str, resource_type: str = "image") -> None:
        ...


class LocalMediaStore(MediaStore):
    def __init__(self, root: str, url_prefix: str = "/static"):
        self.root = root
        self.url_prefix = url_prefix.rstrip("/")

    async def upload(self, file: UploadFile, folder: str) -> StoredMedia:
        ext = os.path.splitext(file.filename or "")[1] or DEFAULT_EXTENSIONS.get(folder, "")
        filename = f"{ObjectId()}{ext}"
        public_id = f"{folder}/{filename}"
        try:
            os.makedirs(os.path.join(self.root, folder), exist_ok=True)
            with open(os.path.join(self.root, folder, filename), "wb") as f:
                f.write(await file.read())
        except OSError as e:
            logger.error("Error while uploading %s: %s", file.filename, e)
            raise MediaStoreError(f"Problem uploading {file.filename or 'file'}, please try again") from e
        return StoredMedia(url=f"{self.url_prefix}/{public_id}", public_id=public_id)

    async def delete(self, public_id: str, resource_type: str = "image") -> None:
        if not public_id:
            return
        path = os.path.join(self.root, public_id)
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.warning("%s %s already gone", resource_type, public_id)
        except OSError as e:
            raise MediaStoreError(f"Could not delete {public_id}") from e
