"""
Admin Moderation Endpoints.

All routes require a bearer token belonging to a user with the `admin` role.

Endpoints Provided:
- `GET /api/admin/pending-videos`: Videos awaiting review, newest first.
- `POST /api/admin/videos/{id}/review`: Approve or reject a pending video.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from core.models import User, Video
from services.video_service import VideoService
from .dependencies import get_video_service, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin)]
)


class ReviewRequest(BaseModel):
    status: str


@router.get("/pending-videos", response_model=List[Video])
async def list_pending_videos(
    limit: int = Query(10, ge=1, le=100),
    videos: VideoService = Depends(get_video_service),
):
    return await videos.list_pending(limit)


@router.post("/videos/{video_id}/review", response_model=Video)
async def review_video(
    video_id: int,
    request: ReviewRequest,
    admin: User = Depends(require_admin),
    videos: VideoService = Depends(get_video_service),
):
    """Approve or reject a pending video"""
    logger.info(
        f"Admin {admin.username} reviewing video {video_id}: {request.status}",
        extra={"admin_id": admin.id, "video_id": video_id},
    )
    return await videos.review_video(video_id, request.status)
