"""
SQL Storage Provider

`StorageProvider` implementation backed by a relational database through
SQLAlchemy's asyncio engine and the SQLModel table definitions.

Every operation runs in its own session and transaction unless it is called
inside `transaction()`, in which case all operations share the session opened
by the outermost block. Counter and points changes are single `UPDATE ...
SET col = col + :delta` statements, and the review transition is a
conditional `UPDATE ... WHERE status = :expected`.
"""

import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import datetime
from typing import AsyncIterator, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from core.database import (
    create_db_and_tables,
    create_engine_for,
    create_session_factory,
    get_database_info,
)
from core.exceptions import ConflictError, StorageError
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
from providers.storage_provider import StorageProvider

logger = logging.getLogger(__name__)


class SQLStorageProvider(StorageProvider):
    """Storage provider using an async SQLAlchemy engine"""

    def __init__(self, database_url: Optional[str] = None):
        self.engine = create_engine_for(database_url)
        self.session_factory = create_session_factory(self.engine)
        self._current_session: ContextVar[Optional[AsyncSession]] = ContextVar(
            f"sql_session_{id(self)}", default=None
        )

    @property
    def backend_name(self) -> str:
        return "sql"

    async def initialize(self) -> None:
        await create_db_and_tables(self.engine)

    async def close(self) -> None:
        await self.engine.dispose()

    async def health_check(self) -> Dict[str, object]:
        info = await get_database_info(self.engine)
        return {
            "status": "healthy" if info["connection_healthy"] else "unhealthy",
            "backend": self.backend_name,
            "database": info,
        }

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        session = self._current_session.get()
        if session is not None:
            yield session
            return

        async with self.session_factory() as session:
            token = self._current_session.set(session)
            try:
                async with session.begin():
                    yield session
            except IntegrityError as e:
                logger.warning(f"Integrity error, transaction rolled back: {e.orig}")
                raise ConflictError("database", str(e.orig))
            except SQLAlchemyError as e:
                logger.error(f"Database error, transaction rolled back: {e}")
                raise StorageError("transaction", str(e))
            finally:
                self._current_session.reset(token)

    # User operations

    async def create_user(self, data: UserCreate) -> User:
        async with self.transaction() as session:
            user = User(**data.model_dump(), points=0)
            session.add(user)
            await session.flush()
            return user

    async def get_user(self, user_id: int) -> Optional[User]:
        async with self.transaction() as session:
            return await session.get(User, user_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        async with self.transaction() as session:
            result = await session.execute(select(User).where(User.username == username))
            return result.scalars().first()

    async def get_top_users(self, limit: int) -> List[User]:
        async with self.transaction() as session:
            result = await session.execute(
                select(User).order_by(User.points.desc(), User.id).limit(limit)
            )
            return list(result.scalars().all())

    async def add_user_points(self, user_id: int, points: int) -> Optional[User]:
        async with self.transaction() as session:
            result = await session.execute(
                update(User)
                .where(User.id == user_id)
                .values(points=User.points + points)
            )
            if result.rowcount == 0:
                return None
            return await self._reload(session, User, user_id)

    # Video operations

    async def create_video(self, data: VideoCreate) -> Video:
        async with self.transaction() as session:
            video = Video(
                **data.model_dump(),
                likes=0,
                views=0,
                comments=0,
                shares=0,
                status=VideoStatus.pending,
                created_at=utcnow(),
            )
            session.add(video)
            await session.flush()
            return video

    async def get_video(self, video_id: int) -> Optional[Video]:
        async with self.transaction() as session:
            return await session.get(Video, video_id)

    async def get_videos_by_user(self, user_id: int) -> List[Video]:
        async with self.transaction() as session:
            result = await session.execute(
                select(Video)
                .where(Video.user_id == user_id)
                .order_by(Video.created_at.desc(), Video.id.desc())
            )
            return list(result.scalars().all())

    async def get_approved_videos(self, limit: int, offset: int) -> List[Video]:
        return await self._approved_videos(None, limit, offset)

    async def get_videos_by_topic(
        self, topic: str, limit: int, offset: int
    ) -> List[Video]:
        return await self._approved_videos(topic, limit, offset)

    async def _approved_videos(
        self, topic: Optional[str], limit: int, offset: int
    ) -> List[Video]:
        statement = select(Video).where(Video.status == VideoStatus.approved)
        if topic is not None:
            statement = statement.where(Video.topic == topic)
        statement = (
            statement.order_by(Video.created_at.desc(), Video.id.desc())
            .offset(offset)
            .limit(limit)
        )
        async with self.transaction() as session:
            result = await session.execute(statement)
            return list(result.scalars().all())

    async def get_pending_videos(self, limit: int) -> List[Video]:
        async with self.transaction() as session:
            result = await session.execute(
                select(Video)
                .where(Video.status == VideoStatus.pending)
                .order_by(Video.created_at.desc(), Video.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def update_video_status(
        self,
        video_id: int,
        status: VideoStatus,
        expected: Optional[VideoStatus] = None,
    ) -> Optional[Video]:
        statement = update(Video).where(Video.id == video_id)
        if expected is not None:
            statement = statement.where(Video.status == expected)
        statement = statement.values(status=status)

        async with self.transaction() as session:
            result = await session.execute(statement)
            if result.rowcount == 0:
                return None
            return await self._reload(session, Video, video_id)

    async def increment_video_likes(self, video_id: int, delta: int = 1) -> Optional[Video]:
        return await self._increment_video(video_id, likes=Video.likes + delta)

    async def increment_video_views(self, video_id: int, delta: int = 1) -> Optional[Video]:
        return await self._increment_video(video_id, views=Video.views + delta)

    async def _increment_video(self, video_id: int, **values) -> Optional[Video]:
        async with self.transaction() as session:
            result = await session.execute(
                update(Video)
                .where(Video.id == video_id)
                .values(**values)
            )
            if result.rowcount == 0:
                return None
            return await self._reload(session, Video, video_id)

    # Comment operations

    async def create_comment(self, data: CommentCreate) -> Comment:
        async with self.transaction() as session:
            comment = Comment(**data.model_dump(), created_at=utcnow())
            session.add(comment)
            await session.flush()
            await session.execute(
                update(Video)
                .where(Video.id == data.video_id)
                .values(comments=Video.comments + 1)
            )
            return comment

    async def get_comments_by_video(self, video_id: int) -> List[Comment]:
        async with self.transaction() as session:
            result = await session.execute(
                select(Comment)
                .where(Comment.video_id == video_id)
                .order_by(Comment.created_at.desc(), Comment.id.desc())
            )
            return list(result.scalars().all())

    # Challenge operations

    async def create_challenge(self, data: ChallengeCreate) -> Challenge:
        async with self.transaction() as session:
            challenge = Challenge(**data.model_dump())
            session.add(challenge)
            await session.flush()
            return challenge

    async def get_active_challenge(
        self, now: Optional[datetime] = None
    ) -> Optional[Challenge]:
        now = now or utcnow()
        async with self.transaction() as session:
            result = await session.execute(
                select(Challenge)
                .where(
                    Challenge.is_active == True,  # noqa: E712
                    Challenge.start_date <= now,
                    Challenge.end_date >= now,
                )
                .order_by(Challenge.id.desc())
                .limit(1)
            )
            return result.scalars().first()

    async def get_all_challenges(self) -> List[Challenge]:
        async with self.transaction() as session:
            result = await session.execute(select(Challenge).order_by(Challenge.id))
            return list(result.scalars().all())

    # Achievement operations

    async def create_achievement(self, data: AchievementCreate) -> Achievement:
        async with self.transaction() as session:
            achievement = Achievement(**data.model_dump(), earned_at=utcnow())
            session.add(achievement)
            await session.flush()
            return achievement

    async def get_achievements_by_user(self, user_id: int) -> List[Achievement]:
        async with self.transaction() as session:
            result = await session.execute(
                select(Achievement)
                .where(Achievement.user_id == user_id)
                .order_by(Achievement.id)
            )
            return list(result.scalars().all())

    # Saved video operations

    async def save_video(self, user_id: int, video_id: int) -> SavedVideo:
        async with self.transaction() as session:
            existing = await session.get(SavedVideo, (user_id, video_id))
            if existing is not None:
                return existing
            saved = SavedVideo(user_id=user_id, video_id=video_id, saved_at=utcnow())
            session.add(saved)
            await session.flush()
            return saved

    async def unsave_video(self, user_id: int, video_id: int) -> bool:
        async with self.transaction() as session:
            existing = await session.get(SavedVideo, (user_id, video_id))
            if existing is None:
                return False
            await session.delete(existing)
            await session.flush()
            return True

    async def get_saved_videos(self, user_id: int) -> List[Video]:
        async with self.transaction() as session:
            result = await session.execute(
                select(Video)
                .join(SavedVideo, SavedVideo.video_id == Video.id)
                .where(SavedVideo.user_id == user_id)
                .order_by(Video.created_at.desc(), Video.id.desc())
            )
            return list(result.scalars().all())

    async def is_video_saved(self, user_id: int, video_id: int) -> bool:
        async with self.transaction() as session:
            return await session.get(SavedVideo, (user_id, video_id)) is not None

    async def _reload(self, session: AsyncSession, model, key):
        return await session.get(model, key, populate_existing=True)
