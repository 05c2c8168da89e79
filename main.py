import logging
import os
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, Header, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

import database
from config import settings
from database import is_well_formed_id, object_id
from errors import AppError, Unauthorized
from feed_service import FeedService
from media import LocalMediaStore, MediaStore
from tweets import TweetService
from videos import VideoService

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Video Sharing Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Uploaded media is served straight from disk
os.makedirs(settings.upload_dir, exist_ok=True)
app.mount("/static", StaticFiles(directory=settings.upload_dir), name="static")


@app.on_event("startup")
async def startup_db_client():
    database.connect(settings)


@app.on_event("shutdown")
async def shutdown_db_client():
    await database.disconnect()


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# -------------------- Dependencies --------------------

def get_store():
    return database.get_store()


def get_media_store() -> MediaStore:
    return LocalMediaStore(settings.upload_dir)


def get_feed_service(store=Depends(get_store)) -> FeedService:
    return FeedService(store, settings)


def get_video_service(store=Depends(get_store), media: MediaStore = Depends(get_media_store)) -> VideoService:
    return VideoService(store, media)


def get_tweet_service(store=Depends(get_store)) -> TweetService:
    return TweetService(store)


# Actor identity comes from the auth layer in front of this service
async def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    store=Depends(get_store),
) -> str:
    if not x_user_id:
        raise Unauthorized("Missing X-User-Id header")
    if not is_well_formed_id(x_user_id) or not await store.get_document("user", {"_id": object_id(x_user_id)}):
        raise Unauthorized("Invalid user id")
    return x_user_id


def get_viewer_id(x_user_id: Optional[str] = Header(default=None, alias="X-User-Id")) -> Optional[str]:
    return x_user_id


# -------------------- Basic Routes --------------------
@app.get("/")
def read_root():
    return {"message": "Video Sharing Backend is running"}


@app.get("/test")
async def test_database():
    info = {
        "backend": "running",
        "database_connected": False,
        "database_name": None,
        "collections": [],
    }
    try:
        store = database.get_store()
        info["database_name"] = store.name
        info["collections"] = (await store.list_collection_names())[:10]
        info["database_connected"] = True
    except AppError as e:
        info["error"] = e.detail
    return info


# -------------------- Videos --------------------
@app.get("/videos")
async def list_videos(
    page: int = 1,
    limit: int = 10,
    query: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_type: Optional[str] = None,
    user_id: Optional[str] = None,
    feed: FeedService = Depends(get_feed_service),
):
    feed_query = feed.parse_query(
        query=query, user_id=user_id, sort_by=sort_by, sort_type=sort_type, page=page, limit=limit
    )
    return await feed.list_videos(feed_query)


@app.post("/videos", status_code=201)
async def publish_video(
    title: str = Form(...),
    description: str = Form(...),
    duration: Optional[float] = Form(None),
    video_file: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    user_id: str = Depends(get_current_user_id),
    videos: VideoService = Depends(get_video_service),
):
    return await videos.publish(user_id, title, description, video_file, thumbnail, duration)


@app.get("/videos/{video_id}")
async def get_video(
    video_id: str,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    videos: VideoService = Depends(get_video_service),
):
    return await videos.get(video_id, viewer_id)


@app.patch("/videos/{video_id}")
async def update_video(
    video_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    user_id: str = Depends(get_current_user_id),
    videos: VideoService = Depends(get_video_service),
):
    return await videos.update(video_id, user_id, title, description, thumbnail)


@app.delete("/videos/{video_id}")
async def delete_video(
    video_id: str,
    user_id: str = Depends(get_current_user_id),
    videos: VideoService = Depends(get_video_service),
):
    await videos.delete(video_id, user_id)
    return {"video_id": video_id, "deleted": True}


@app.patch("/videos/{video_id}/toggle-publish")
async def toggle_publish_status(
    video_id: str,
    user_id: str = Depends(get_current_user_id),
    videos: VideoService = Depends(get_video_service),
):
    return await videos.toggle_publish(video_id, user_id)


# -------------------- Tweets --------------------
class TweetRequest(BaseModel):
    content: str


@app.post("/tweets", status_code=201)
async def create_tweet(
    payload: TweetRequest,
    user_id: str = Depends(get_current_user_id),
    tweets: TweetService = Depends(get_tweet_service),
):
    return await tweets.create(user_id, payload.content)


@app.get("/tweets/user/{user_id}")
async def list_user_tweets(
    user_id: str,
    page: int = 1,
    limit: int = 10,
    feed: FeedService = Depends(get_feed_service),
):
    return await feed.list_user_tweets(user_id, page, limit)


@app.patch("/tweets/{tweet_id}")
async def update_tweet(
    tweet_id: str,
    payload: TweetRequest,
    user_id: str = Depends(get_current_user_id),
    tweets: TweetService = Depends(get_tweet_service),
):
    return await tweets.update(tweet_id, user_id, payload.content)


@app.delete("/tweets/{tweet_id}")
async def delete_tweet(
    tweet_id: str,
    user_id: str = Depends(get_current_user_id),
    tweets: TweetService = Depends(get_tweet_service),
):
    await tweets.delete(tweet_id, user_id)
    return {"tweet_id": tweet_id, "deleted": True}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", settings.port))
    uvicorn.run(app, host="0.0.0.0", port=port)
