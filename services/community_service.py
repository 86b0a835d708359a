"""
Community Service

Comments, user lookups, the points leaderboard, challenges and achievements.
"""

import logging
from datetime import timedelta
from typing import List, Optional

from core.exceptions import (
    ChallengeNotFoundError,
    UserNotFoundError,
    ValidationError,
    VideoNotFoundError,
)
from core.models import (
    Achievement,
    AchievementCreate,
    AchievementType,
    Challenge,
    ChallengeCreate,
    Comment,
    CommentCreate,
    User,
    utcnow,
)
from providers.storage_provider import StorageProvider
from services.scoring import PointEvent, award_points

logger = logging.getLogger(__name__)


class CommunityService:
    """Social features around videos and users"""

    def __init__(self, storage: StorageProvider):
        self.storage = storage

    # Users

    async def get_user(self, user_id: int) -> User:
        user = await self.storage.get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def get_user_by_username(self, username: str) -> User:
        user = await self.storage.get_user_by_username(username)
        if user is None:
            raise UserNotFoundError(username)
        return user

    async def leaderboard(self, limit: int = 10) -> List[User]:
        if limit < 1:
            raise ValidationError("limit", limit, "Limit must be at least 1")
        return await self.storage.get_top_users(limit)

    # Comments

    async def post_comment(self, data: CommentCreate) -> Comment:
        """Store a comment, bump the video's counter and award the commenter"""
        if await self.storage.get_video(data.video_id) is None:
            raise VideoNotFoundError(data.video_id)
        if await self.storage.get_user(data.user_id) is None:
            raise UserNotFoundError(data.user_id)

        async with self.storage.transaction():
            comment = await self.storage.create_comment(data)
            await award_points(self.storage, data.user_id, PointEvent.comment_posted)

        logger.info(
            f"Comment {comment.id} posted on video {data.video_id}",
            extra={"comment_id": comment.id, "video_id": data.video_id, "user_id": data.user_id},
        )
        return comment

    async def list_comments(self, video_id: int) -> List[Comment]:
        return await self.storage.get_comments_by_video(video_id)

    # Challenges

    async def create_challenge(self, data: ChallengeCreate) -> Challenge:
        if data.end_date < data.start_date:
            raise ValidationError(
                "end_date", data.end_date.isoformat(), "End date precedes start date"
            )
        challenge = await self.storage.create_challenge(data)
        logger.info(
            f"Challenge {challenge.id} created: {challenge.title}",
            extra={"challenge_id": challenge.id, "topic": challenge.topic},
        )
        return challenge

    async def get_active_challenge(self) -> Challenge:
        challenge = await self.storage.get_active_challenge()
        if challenge is None:
            raise ChallengeNotFoundError("active")
        return challenge

    async def list_challenges(self) -> List[Challenge]:
        return await self.storage.get_all_challenges()

    async def seed_sample_challenge(self) -> Optional[Challenge]:
        """Create the weekly sample challenge when no challenge exists yet"""
        if await self.storage.get_all_challenges():
            return None
        now = utcnow()
        return await self.create_challenge(
            ChallengeCreate(
                title="Weekly Challenge 🌟",
                description="Show us your plastic-free grocery haul!",
                start_date=now,
                end_date=now + timedelta(days=7),
                topic="waste",
                is_active=True,
            )
        )

    # Achievements

    async def grant_achievement(self, data: AchievementCreate) -> Achievement:
        if await self.storage.get_user(data.user_id) is None:
            raise UserNotFoundError(data.user_id)
        achievement = await self.storage.create_achievement(data)
        kind = AchievementType(achievement.type).value
        logger.info(
            f"User {data.user_id} earned {kind}",
            extra={"user_id": data.user_id, "achievement": kind},
        )
        return achievement

    async def list_achievements(self, user_id: int) -> List[Achievement]:
        return await self.storage.get_achievements_by_user(user_id)
