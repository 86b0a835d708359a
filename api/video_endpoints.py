"""
Video Endpoints.

Upload, feed, single-video, like/view/save and bookmark endpoints.

Endpoints Provided:
- `POST /api/videos`: Multipart upload (file field `video` plus metadata).
  Creates a pending video and awards the uploader.
- `GET /api/videos`: Approved videos, newest first, optional `topic`.
- `GET /api/videos/{id}`: One video; counts a view. An authenticated caller
  also gets `saved`, whether the video is in their bookmarks.
- `POST /api/videos/{id}/like` / `POST /api/videos/{id}/view`.
- `POST /api/videos/{id}/save`: Save or unsave for the authenticated caller.
- `GET /api/users/saved-videos`: The caller's bookmarks.
- `GET /api/users/{user_id}/videos`: Every video a user uploaded.

This router must be mounted before the community router so that
`/api/users/saved-videos` is matched ahead of `/api/users/{user_id}`.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import BaseModel

from core.models import User, Video, VideoCreate, VideoDetail
from services.media_service import MediaService
from services.video_service import VideoService
from .dependencies import (
    get_current_user,
    get_media_service,
    get_optional_user,
    get_video_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Videos"])


class SaveRequest(BaseModel):
    action: str = "save"


class SaveResponse(BaseModel):
    success: bool
    action: str
    saved: bool


@router.post("/videos", response_model=Video, status_code=201)
async def upload_video(
    video: UploadFile = File(...),
    user_id: int = Form(...),
    title: str = Form(..., min_length=1, max_length=200),
    topic: str = Form(..., min_length=1, max_length=50),
    description: Optional[str] = Form(None, max_length=2000),
    thumbnail_url: Optional[str] = Form(None, max_length=1024),
    videos: VideoService = Depends(get_video_service),
    media: MediaService = Depends(get_media_service),
):
    """Upload a new video for moderation"""
    video_url = await media.store(video)
    try:
        data = VideoCreate(
            user_id=user_id,
            title=title,
            description=description,
            video_url=video_url,
            thumbnail_url=thumbnail_url,
            topic=topic,
        )
        return await videos.upload_video(data)
    except Exception:
        media.discard(video_url)
        raise


@router.get("/videos", response_model=List[Video])
async def list_videos(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    topic: Optional[str] = Query(None),
    videos: VideoService = Depends(get_video_service),
):
    """Approved videos, newest first"""
    return await videos.list_feed(limit=limit, offset=offset, topic=topic)


@router.get("/videos/{video_id}", response_model=VideoDetail)
async def get_video(
    video_id: int,
    user: Optional[User] = Depends(get_optional_user),
    videos: VideoService = Depends(get_video_service),
):
    """Fetch a video and count the view"""
    video = await videos.view_video(video_id)
    saved = await videos.is_saved(user.id, video_id) if user else None
    return VideoDetail(**video.model_dump(), saved=saved)


@router.post("/videos/{video_id}/like", response_model=Video)
async def like_video(video_id: int, videos: VideoService = Depends(get_video_service)):
    return await videos.like_video(video_id)


@router.post("/videos/{video_id}/view", response_model=Video)
async def view_video(video_id: int, videos: VideoService = Depends(get_video_service)):
    return await videos.view_video(video_id)


@router.post("/videos/{video_id}/save", response_model=SaveResponse)
async def save_video(
    video_id: int,
    request: Optional[SaveRequest] = None,
    user: User = Depends(get_current_user),
    videos: VideoService = Depends(get_video_service),
):
    """Bookmark or un-bookmark a video for the caller"""
    action = request.action if request else "save"
    saved = await videos.set_saved(user.id, video_id, action)
    return SaveResponse(success=True, action=action, saved=saved)


@router.get("/users/saved-videos", response_model=List[Video])
async def list_saved_videos(
    user: User = Depends(get_current_user),
    videos: VideoService = Depends(get_video_service),
):
    return await videos.list_saved(user.id)


@router.get("/users/{user_id}/videos", response_model=List[Video])
async def list_user_videos(
    user_id: int, videos: VideoService = Depends(get_video_service)
):
    return await videos.list_user_videos(user_id)
