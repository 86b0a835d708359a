"""
Point awarding rules.

Points are additive only: there is no cap, decay or decrement path.
"""

import enum
import logging
from typing import Optional

from core.exceptions import UserNotFoundError
from core.models import User
from providers.storage_provider import StorageProvider

logger = logging.getLogger(__name__)


class PointEvent(str, enum.Enum):
    video_uploaded = "video_uploaded"
    like_received = "like_received"
    comment_posted = "comment_posted"
    video_approved = "video_approved"


POINT_REWARDS = {
    PointEvent.video_uploaded: 10,
    PointEvent.like_received: 1,
    PointEvent.comment_posted: 1,
    PointEvent.video_approved: 20,
}


async def award_points(
    storage: StorageProvider, user_id: int, event: PointEvent
) -> User:
    """Credit the reward for `event` to a user; raises if the user is gone"""
    points = POINT_REWARDS[event]
    user: Optional[User] = await storage.add_user_points(user_id, points)
    if user is None:
        raise UserNotFoundError(user_id)

    logger.info(
        f"Awarded {points} points to user {user_id} for {event.value}",
        extra={
            "user_id": user_id,
            "event": event.value,
            "points": points,
            "total_points": user.points,
        },
    )
    return user
