"""Pytest configuration and fixtures."""
import copy
import os
import tempfile
from collections import defaultdict
from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId

# Keep uploaded files out of the working tree
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="uploads-"))

from errors import MediaStoreError, StoreUnavailable  # noqa: E402
from media import MediaStore, StoredMedia  # noqa: E402

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _sort_key(value):
    # Missing and null sort before everything else, as in MongoDB
    return (0, 0) if value is None else (1, value)


class FakeStore:
    """In-memory stand-in for MongoStore.

    Understands the aggregation stages the feed engine emits. $search is
    answered from ``search_scores``: {query text: {ObjectId: score}}.
    """

    name = "test"

    def __init__(self):
        self.collections = defaultdict(dict)
        self.search_scores = {}
        self.calls = []
        self.fail = False

    # -------- seeding helpers --------
    def insert(self, collection, **doc):
        doc.setdefault("_id", ObjectId())
        doc.setdefault("created_at", T0)
        doc.setdefault("updated_at", doc["created_at"])
        self.collections[collection][doc["_id"]] = doc
        return doc["_id"]

    def add_user(self, username="user", **doc):
        return self.insert(
            "user",
            username=username,
            email=f"{username}@example.com",
            fullname=username.title(),
            avatar_url=f"http://img/{username}.png",
            **doc,
        )

    def add_video(self, owner, minutes=0, published=True, **doc):
        doc.setdefault("title", "A video")
        doc.setdefault("description", "Some description")
        doc.setdefault("views", 0)
        return self.insert(
            "video",
            video_url="/static/videos/v.mp4",
            video_public_id="videos/v.mp4",
            thumbnail_url="/static/thumbnails/t.jpg",
            thumbnail_public_id="thumbnails/t.jpg",
            duration=12.5,
            is_published=published,
            owner=owner,
            created_at=T0 + timedelta(minutes=minutes),
            **doc,
        )

    # -------- adapter interface --------
    def _check(self, op, collection, payload=None):
        self.calls.append((op, collection, payload))
        if self.fail:
            raise StoreUnavailable()

    async def aggregate(self, collection, stages):
        self._check("aggregate", collection, stages)
        return self._run(collection, stages)

    async def count(self, collection, stages):
        self._check("count", collection, stages)
        return len(self._run(collection, stages))

    async def create_document(self, collection, data):
        self._check("create", collection, data)
        if hasattr(data, "model_dump"):
            data = data.model_dump()
        now = datetime.now(timezone.utc)
        return str(self.insert(collection, **{**data, "created_at": now, "updated_at": now}))

    async def get_document(self, collection, filter_dict):
        self._check("get", collection, filter_dict)
        for doc in self.collections[collection].values():
            if self._matches(doc, filter_dict):
                return copy.deepcopy(doc)
        return None

    async def update_document(self, collection, filter_dict, update):
        self._check("update", collection, update)
        for doc in self.collections[collection].values():
            if self._matches(doc, filter_dict):
                doc.update(update.get("$set", {}))
                for key, amount in update.get("$inc", {}).items():
                    doc[key] = doc.get(key, 0) + amount
                doc["updated_at"] = datetime.now(timezone.utc)
                return copy.deepcopy(doc)
        return None

    async def delete_document(self, collection, filter_dict):
        self._check("delete", collection, filter_dict)
        for _id, doc in list(self.collections[collection].items()):
            if self._matches(doc, filter_dict):
                del self.collections[collection][_id]
                return True
        return False

    async def list_collection_names(self):
        return list(self.collections)

    # -------- stage evaluation --------
    @staticmethod
    def _matches(doc, filter_dict):
        return all(doc.get(key) == value for key, value in filter_dict.items())

    def _eval(self, expr, doc):
        if isinstance(expr, str) and expr.startswith("$"):
            return doc.get(expr[1:])
        if isinstance(expr, dict):
            if "$meta" in expr:
                return doc.get("__score")
            if "$ifNull" in expr:
                value, default = expr["$ifNull"]
                value = self._eval(value, doc)
                return value if value is not None else self._eval(default, doc)
            if "$arrayElemAt" in expr:
                array, index = expr["$arrayElemAt"]
                array = self._eval(array, doc) or []
                return array[index] if -len(array) <= index < len(array) else None
        return expr

    def _run(self, collection, stages):
        docs = [copy.deepcopy(d) for d in self.collections[collection].values()]
        for stage in stages:
            (op, spec), = stage.items()
            if op == "$search":
                scores = self.search_scores.get(spec["text"]["query"], {})
                docs = [d for d in docs if d["_id"] in scores]
                for d in docs:
                    d["__score"] = scores[d["_id"]]
            elif op == "$match":
                docs = [d for d in docs if self._matches(d, spec)]
            elif op == "$addFields":
                for d in docs:
                    for key, expr in spec.items():
                        d[key] = self._eval(expr, d)
            elif op == "$sort":
                for key, direction in reversed(list(spec.items())):
                    docs.sort(key=lambda d: _sort_key(d.get(key)), reverse=direction == -1)
            elif op == "$skip":
                docs = docs[spec:]
            elif op == "$limit":
                docs = docs[:spec]
            elif op == "$lookup":
                fields = [k for s in spec.get("pipeline", []) for k in s.get("$project", {})]
                for d in docs:
                    joined = []
                    for f in self.collections[spec["from"]].values():
                        if f.get(spec["foreignField"]) == d.get(spec["localField"]):
                            joined.append({"_id": f["_id"], **{k: f[k] for k in fields if k in f}})
                    d[spec["as"]] = joined
            elif op == "$count":
                docs = [{spec: len(docs)}] if docs else []
            else:
                raise NotImplementedError(op)
        for d in docs:
            d.pop("__score", None)
        return docs


class FakeMediaStore(MediaStore):
    def __init__(self):
        self.uploaded = []
        self.deleted = []
        self.fail_folders = set()
        self.fail_delete = False

    async def upload(self, file, folder):
        if folder in self.fail_folders:
            raise MediaStoreError(f"Problem uploading {file.filename}")
        public_id = f"{folder}/{len(self.uploaded)}-{file.filename}"
        self.uploaded.append(public_id)
        return StoredMedia(url=f"/static/{public_id}", public_id=public_id, duration=None)

    async def delete(self, public_id, resource_type="image"):
        if self.fail_delete:
            raise MediaStoreError(f"Could not delete {public_id}")
        self.deleted.append(public_id)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def media():
    return FakeMediaStore()


@pytest.fixture
def client(store, media):
    from fastapi.testclient import TestClient
    from main import app, get_media_store, get_store

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_media_store] = lambda: media
    yield TestClient(app)
    app.dependency_overrides.clear()
