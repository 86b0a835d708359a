"""
Storage Provider Classes

`StorageProvider` is the repository interface the services talk to: typed
create / lookup / query / update operations for every entity kind, plus a
`transaction()` context manager that groups several writes into one unit.
`MemoryStorageProvider` implements it over in-memory entity stores; the SQL
implementation lives in `providers.sql_storage_provider`.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import datetime
from typing import AsyncIterator, Dict, List, Optional, Tuple

from core.models import (
    Achievement,
    AchievementCreate,
    Challenge,
    ChallengeCreate,
    Comment,
    CommentCreate,
    SavedVideo,
    User,
    UserCreate,
    Video,
    VideoCreate,
    VideoStatus,
    utcnow,
)
from core.store import EntityStore, replace_fields

logger = logging.getLogger(__name__)


class StorageProvider(ABC):
    """Abstract base class for storage providers"""

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Backend identifier for this provider"""
        pass

    async def initialize(self) -> None:
        """Prepare the backend (create tables, open pools)"""

    async def close(self) -> None:
        """Release backend resources"""

    async def health_check(self) -> Dict[str, object]:
        return {"status": "healthy", "backend": self.backend_name}

    @abstractmethod
    def transaction(self):
        """Async context manager: all writes inside apply together or not at all"""
        pass

    # User operations

    @abstractmethod
    async def create_user(self, data: UserCreate) -> User:
        pass

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]:
        pass

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[User]:
        pass

    @abstractmethod
    async def get_top_users(self, limit: int) -> List[User]:
        """Users by points descending, ties by id ascending"""
        pass

    @abstractmethod
    async def add_user_points(self, user_id: int, points: int) -> Optional[User]:
        """Atomically add `points` to a user; None if the user is absent"""
        pass

    # Video operations

    @abstractmethod
    async def create_video(self, data: VideoCreate) -> Video:
        pass

    @abstractmethod
    async def get_video(self, video_id: int) -> Optional[Video]:
        pass

    @abstractmethod
    async def get_videos_by_user(self, user_id: int) -> List[Video]:
        pass

    @abstractmethod
    async def get_approved_videos(self, limit: int, offset: int) -> List[Video]:
        pass

    @abstractmethod
    async def get_videos_by_topic(
        self, topic: str, limit: int, offset: int
    ) -> List[Video]:
        pass

    @abstractmethod
    async def get_pending_videos(self, limit: int) -> List[Video]:
        pass

    @abstractmethod
    async def update_video_status(
        self,
        video_id: int,
        status: VideoStatus,
        expected: Optional[VideoStatus] = None,
    ) -> Optional[Video]:
        """
        Set a video's status.

        When `expected` is given the write only happens if the stored status
        still equals it. Returns the updated video, or None if the video is
        absent or the expectation did not hold.
        """
        pass

    @abstractmethod
    async def increment_video_likes(self, video_id: int, delta: int = 1) -> Optional[Video]:
        pass

    @abstractmethod
    async def increment_video_views(self, video_id: int, delta: int = 1) -> Optional[Video]:
        pass

    # Comment operations

    @abstractmethod
    async def create_comment(self, data: CommentCreate) -> Comment:
        """Store a comment and bump the parent video's comment counter"""
        pass

    @abstractmethod
    async def get_comments_by_video(self, video_id: int) -> List[Comment]:
        pass

    # Challenge operations

    @abstractmethod
    async def create_challenge(self, data: ChallengeCreate) -> Challenge:
        pass

    @abstractmethod
    async def get_active_challenge(
        self, now: Optional[datetime] = None
    ) -> Optional[Challenge]:
        """Most recently created challenge that is flagged active and running"""
        pass

    @abstractmethod
    async def get_all_challenges(self) -> List[Challenge]:
        pass

    # Achievement operations

    @abstractmethod
    async def create_achievement(self, data: AchievementCreate) -> Achievement:
        pass

    @abstractmethod
    async def get_achievements_by_user(self, user_id: int) -> List[Achievement]:
        pass

    # Saved video operations

    @abstractmethod
    async def save_video(self, user_id: int, video_id: int) -> SavedVideo:
        """Upsert the (user, video) bookmark"""
        pass

    @abstractmethod
    async def unsave_video(self, user_id: int, video_id: int) -> bool:
        pass

    @abstractmethod
    async def get_saved_videos(self, user_id: int) -> List[Video]:
        pass

    @abstractmethod
    async def is_video_saved(self, user_id: int, video_id: int) -> bool:
        pass


def _newest_first(videos: List[Video]) -> List[Video]:
    return sorted(videos, key=lambda v: (v.created_at, v.id), reverse=True)


class MemoryStorageProvider(StorageProvider):
    """Storage provider keeping every entity kind in an in-memory EntityStore"""

    def __init__(self):
        self.users: EntityStore[int, User] = EntityStore("users")
        self.videos: EntityStore[int, Video] = EntityStore("videos")
        self.comments: EntityStore[int, Comment] = EntityStore("comments")
        self.challenges: EntityStore[int, Challenge] = EntityStore("challenges")
        self.achievements: EntityStore[int, Achievement] = EntityStore("achievements")
        self.saved_videos: EntityStore[Tuple[int, int], SavedVideo] = EntityStore(
            "saved_videos"
        )
        self._lock = asyncio.Lock()
        self._in_transaction: ContextVar[bool] = ContextVar(
            f"memory_tx_{id(self)}", default=False
        )

    @property
    def backend_name(self) -> str:
        return "memory"

    @property
    def _stores(self) -> List[EntityStore]:
        return [
            self.users,
            self.videos,
            self.comments,
            self.challenges,
            self.achievements,
            self.saved_videos,
        ]

    async def health_check(self) -> Dict[str, object]:
        return {
            "status": "healthy",
            "backend": self.backend_name,
            "records": {store.name: len(store) for store in self._stores},
        }

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if self._in_transaction.get():
            yield
            return

        async with self._lock:
            token = self._in_transaction.set(True)
            snapshots = [store.snapshot() for store in self._stores]
            try:
                yield
            except BaseException:
                for store, state in zip(self._stores, snapshots):
                    store.restore(state)
                logger.warning("Memory transaction rolled back")
                raise
            finally:
                self._in_transaction.reset(token)

    # User operations

    async def create_user(self, data: UserCreate) -> User:
        user = User(**data.model_dump(), id=self.users.next_id(), points=0)
        return self.users.put(user.id, user)

    async def get_user(self, user_id: int) -> Optional[User]:
        return self.users.get(user_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        return next(
            (user for user in self.users.all() if user.username == username), None
        )

    async def get_top_users(self, limit: int) -> List[User]:
        ranked = sorted(self.users.all(), key=lambda u: (-u.points, u.id))
        return ranked[:limit]

    async def add_user_points(self, user_id: int, points: int) -> Optional[User]:
        return self.users.update(
            user_id, lambda user: replace_fields(user, points=user.points + points)
        )

    # Video operations

    async def create_video(self, data: VideoCreate) -> Video:
        video = Video(
            **data.model_dump(),
            id=self.videos.next_id(),
            likes=0,
            views=0,
            comments=0,
            shares=0,
            status=VideoStatus.pending,
            created_at=utcnow(),
        )
        return self.videos.put(video.id, video)

    async def get_video(self, video_id: int) -> Optional[Video]:
        return self.videos.get(video_id)

    async def get_videos_by_user(self, user_id: int) -> List[Video]:
        return _newest_first([v for v in self.videos.all() if v.user_id == user_id])

    async def get_approved_videos(self, limit: int, offset: int) -> List[Video]:
        approved = [v for v in self.videos.all() if v.status == VideoStatus.approved]
        return _newest_first(approved)[offset : offset + limit]

    async def get_videos_by_topic(
        self, topic: str, limit: int, offset: int
    ) -> List[Video]:
        matching = [
            v
            for v in self.videos.all()
            if v.status == VideoStatus.approved and v.topic == topic
        ]
        return _newest_first(matching)[offset : offset + limit]

    async def get_pending_videos(self, limit: int) -> List[Video]:
        pending = [v for v in self.videos.all() if v.status == VideoStatus.pending]
        return _newest_first(pending)[:limit]

    async def update_video_status(
        self,
        video_id: int,
        status: VideoStatus,
        expected: Optional[VideoStatus] = None,
    ) -> Optional[Video]:
        current = self.videos.get(video_id)
        if current is None or (expected is not None and current.status != expected):
            return None
        return self.videos.update(
            video_id, lambda video: replace_fields(video, status=status)
        )

    async def increment_video_likes(self, video_id: int, delta: int = 1) -> Optional[Video]:
        return self.videos.update(
            video_id, lambda video: replace_fields(video, likes=video.likes + delta)
        )

    async def increment_video_views(self, video_id: int, delta: int = 1) -> Optional[Video]:
        return self.videos.update(
            video_id, lambda video: replace_fields(video, views=video.views + delta)
        )

    # Comment operations

    async def create_comment(self, data: CommentCreate) -> Comment:
        comment = Comment(
            **data.model_dump(), id=self.comments.next_id(), created_at=utcnow()
        )
        self.comments.put(comment.id, comment)
        self.videos.update(
            data.video_id,
            lambda video: replace_fields(video, comments=video.comments + 1),
        )
        return comment

    async def get_comments_by_video(self, video_id: int) -> List[Comment]:
        return sorted(
            (c for c in self.comments.all() if c.video_id == video_id),
            key=lambda c: (c.created_at, c.id),
            reverse=True,
        )

    # Challenge operations

    async def create_challenge(self, data: ChallengeCreate) -> Challenge:
        challenge = Challenge(**data.model_dump(), id=self.challenges.next_id())
        return self.challenges.put(challenge.id, challenge)

    async def get_active_challenge(
        self, now: Optional[datetime] = None
    ) -> Optional[Challenge]:
        now = now or utcnow()
        running = [c for c in self.challenges.all() if c.is_running(now)]
        return max(running, key=lambda c: c.id, default=None)

    async def get_all_challenges(self) -> List[Challenge]:
        return self.challenges.all()

    # Achievement operations

    async def create_achievement(self, data: AchievementCreate) -> Achievement:
        achievement = Achievement(
            **data.model_dump(), id=self.achievements.next_id(), earned_at=utcnow()
        )
        return self.achievements.put(achievement.id, achievement)

    async def get_achievements_by_user(self, user_id: int) -> List[Achievement]:
        return [a for a in self.achievements.all() if a.user_id == user_id]

    # Saved video operations

    async def save_video(self, user_id: int, video_id: int) -> SavedVideo:
        existing = self.saved_videos.get((user_id, video_id))
        if existing is not None:
            return existing
        saved = SavedVideo(user_id=user_id, video_id=video_id, saved_at=utcnow())
        return self.saved_videos.put((user_id, video_id), saved)

    async def unsave_video(self, user_id: int, video_id: int) -> bool:
        return self.saved_videos.delete((user_id, video_id))

    async def get_saved_videos(self, user_id: int) -> List[Video]:
        videos = [
            self.videos.get(saved.video_id)
            for saved in self.saved_videos.all()
            if saved.user_id == user_id
        ]
        return _newest_first([v for v in videos if v is not None])

    async def is_video_saved(self, user_id: int, video_id: int) -> bool:
        return self.saved_videos.contains((user_id, video_id))
