"""
Video Lifecycle and Scoring Service.

This module owns the workflow around a video: upload, feed queries, views,
likes, bookmarks and admin review. It is the only place where counters and
points are changed together.

Lifecycle:
- A video is created `pending` on upload and the uploader earns 10 points.
- An admin review moves it from `pending` to `approved` (the owner earns a 20
  point bonus) or to `rejected` (no points). Both are terminal: reviewing a
  video that is no longer pending raises `InvalidTransitionError`.

Scoring:
- A like bumps the like counter and earns the owner 1 point.

Every multi-write step runs inside `StorageProvider.transaction()`, so the
counter change and the point award either both happen or neither does.
Input validation and not-found checks happen before any write.
"""

import logging
from typing import List, Optional

from core.exceptions import (
    InvalidTransitionError,
    UserNotFoundError,
    ValidationError,
    VideoNotFoundError,
)
from core.logging_config import log_function_call
from core.models import Video, VideoCreate, VideoStatus
from providers.storage_provider import StorageProvider
from services.scoring import PointEvent, award_points

logger = logging.getLogger(__name__)

REVIEW_OUTCOMES = {VideoStatus.approved.value, VideoStatus.rejected.value}
SAVE_ACTIONS = {"save", "unsave"}


class VideoService:
    """Service implementing the video lifecycle and its point awards"""

    def __init__(self, storage: StorageProvider):
        self.storage = storage

    async def _require_video(self, video_id: int) -> Video:
        video = await self.storage.get_video(video_id)
        if video is None:
            raise VideoNotFoundError(video_id)
        return video

    @log_function_call(logger)
    async def upload_video(self, data: VideoCreate) -> Video:
        """Create a pending video and award the uploader"""
        if await self.storage.get_user(data.user_id) is None:
            raise UserNotFoundError(data.user_id)

        async with self.storage.transaction():
            video = await self.storage.create_video(data)
            await award_points(self.storage, data.user_id, PointEvent.video_uploaded)

        logger.info(
            f"Video {video.id} uploaded by user {data.user_id}",
            extra={"video_id": video.id, "user_id": data.user_id, "topic": data.topic},
        )
        return video

    async def list_feed(
        self, limit: int = 10, offset: int = 0, topic: Optional[str] = None
    ) -> List[Video]:
        """Approved videos, newest first, optionally for one topic"""
        if limit < 1:
            raise ValidationError("limit", limit, "Limit must be at least 1")
        if offset < 0:
            raise ValidationError("offset", offset, "Offset must not be negative")

        if topic and topic != "all":
            return await self.storage.get_videos_by_topic(topic, limit, offset)
        return await self.storage.get_approved_videos(limit, offset)

    async def list_user_videos(self, user_id: int) -> List[Video]:
        return await self.storage.get_videos_by_user(user_id)

    async def view_video(self, video_id: int) -> Video:
        """Register a view and return the updated video"""
        video = await self.storage.increment_video_views(video_id)
        if video is None:
            raise VideoNotFoundError(video_id)
        return video

    @log_function_call(logger)
    async def like_video(self, video_id: int) -> Video:
        """Count a like and award the owner in one unit"""
        await self._require_video(video_id)

        async with self.storage.transaction():
            video = await self.storage.increment_video_likes(video_id)
            if video is None:
                raise VideoNotFoundError(video_id)
            await award_points(self.storage, video.user_id, PointEvent.like_received)

        logger.info(
            f"Video {video_id} liked",
            extra={"video_id": video_id, "likes": video.likes},
        )
        return video

    async def list_pending(self, limit: int = 10) -> List[Video]:
        if limit < 1:
            raise ValidationError("limit", limit, "Limit must be at least 1")
        return await self.storage.get_pending_videos(limit)

    @log_function_call(logger)
    async def review_video(self, video_id: int, status: str) -> Video:
        """
        Apply an admin decision to a pending video.

        Raises:
            ValidationError: `status` is neither "approved" nor "rejected".
            VideoNotFoundError: the video does not exist.
            InvalidTransitionError: the video was already reviewed.
        """
        if status not in REVIEW_OUTCOMES:
            raise ValidationError(
                "status", status, "Status must be 'approved' or 'rejected'"
            )
        target = VideoStatus(status)
        current = await self._require_video(video_id)

        async with self.storage.transaction():
            video = await self.storage.update_video_status(
                video_id, target, expected=VideoStatus.pending
            )
            if video is None:
                latest = await self.storage.get_video(video_id) or current
                raise InvalidTransitionError(
                    video_id, VideoStatus(latest.status).value, target.value
                )
            if target == VideoStatus.approved:
                await award_points(self.storage, video.user_id, PointEvent.video_approved)

        logger.info(
            f"Video {video_id} reviewed: {target.value}",
            extra={"video_id": video_id, "status": target.value},
        )
        return video

    async def set_saved(self, user_id: int, video_id: int, action: str) -> bool:
        """Save or unsave a video for a user; returns whether it is now saved"""
        if action not in SAVE_ACTIONS:
            raise ValidationError("action", action, "Action must be 'save' or 'unsave'")
        await self._require_video(video_id)

        if action == "save":
            await self.storage.save_video(user_id, video_id)
            saved = True
        else:
            await self.storage.unsave_video(user_id, video_id)
            saved = False

        logger.info(
            f"User {user_id} {action}d video {video_id}",
            extra={"user_id": user_id, "video_id": video_id, "action": action},
        )
        return saved

    async def list_saved(self, user_id: int) -> List[Video]:
        return await self.storage.get_saved_videos(user_id)

    async def is_saved(self, user_id: int, video_id: int) -> bool:
        return await self.storage.is_video_saved(user_id, video_id)
