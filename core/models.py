"""
Core data models for the EcoSnap API

Table models (`User`, `Video`, `Comment`, `Challenge`, `Achievement`,
`SavedVideo`) are shared by every storage provider. The `*Create` classes are
the validated input schemas accepted by the storage layer. `UserPublic` and
`VideoDetail` are the user and single-video representations returned to
clients.
"""

import enum
from datetime import datetime, timezone
from typing import Optional
from pydantic import field_validator
from sqlalchemy.types import DateTime, TypeDecorator
from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp used for every stored datetime"""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Convert to aware UTC; naive values are taken to be UTC already"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCTimestamp(TypeDecorator):
    """Stores naive UTC in the database and hands back aware UTC datetimes"""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return as_utc(value).replace(tzinfo=None)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return as_utc(value)


class UserRole(str, enum.Enum):
    user = "user"
    admin = "admin"


class VideoStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class AchievementType(str, enum.Enum):
    green_beginner = "green_beginner"
    energy_saver = "energy_saver"
    waste_warrior = "waste_warrior"
    biodiversity_pro = "biodiversity_pro"
    top_creator = "top_creator"


# Users


class UserBase(SQLModel):
    username: str = Field(index=True, unique=True, min_length=3, max_length=50)
    display_name: str = Field(min_length=1, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=500)
    profile_image: Optional[str] = Field(default=None, max_length=1024)


class UserCreate(UserBase):
    password_hash: str
    role: UserRole = UserRole.user


class User(UserBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    password_hash: str
    points: int = Field(default=0, ge=0)
    role: UserRole = Field(default=UserRole.user)


class UserPublic(UserBase):
    """User as exposed over the API, without the credential hash"""

    id: int
    points: int
    role: UserRole


# Videos


class VideoBase(SQLModel):
    user_id: int = Field(foreign_key="user.id", index=True)
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    video_url: str = Field(min_length=1, max_length=1024)
    thumbnail_url: Optional[str] = Field(default=None, max_length=1024)
    topic: str = Field(index=True, min_length=1, max_length=50)


class VideoCreate(VideoBase):
    pass


class Video(VideoBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    likes: int = Field(default=0, ge=0)
    views: int = Field(default=0, ge=0)
    comments: int = Field(default=0, ge=0)
    shares: int = Field(default=0, ge=0)
    status: VideoStatus = Field(default=VideoStatus.pending, index=True)
    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=UTCTimestamp)


class VideoDetail(VideoBase):
    """One video as shown to a viewer; `saved` is null for anonymous callers"""

    id: int
    likes: int
    views: int
    comments: int
    shares: int
    status: VideoStatus
    created_at: datetime
    saved: Optional[bool] = None


# Comments


class CommentBase(SQLModel):
    video_id: int = Field(foreign_key="video.id", index=True)
    user_id: int = Field(foreign_key="user.id")
    content: str = Field(min_length=1, max_length=1000)


class CommentCreate(CommentBase):
    pass


class Comment(CommentBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCTimestamp)


# Challenges


class ChallengeBase(SQLModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=2000)
    start_date: datetime = Field(sa_type=UTCTimestamp)
    end_date: datetime = Field(sa_type=UTCTimestamp)
    topic: str = Field(min_length=1, max_length=50)
    is_active: bool = True


class ChallengeCreate(ChallengeBase):
    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_timezone(cls, value: datetime) -> datetime:
        return as_utc(value)


class Challenge(ChallengeBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    def is_running(self, now: datetime) -> bool:
        return self.is_active and self.start_date <= now <= self.end_date


# Achievements


class AchievementBase(SQLModel):
    user_id: int = Field(foreign_key="user.id", index=True)
    type: AchievementType


class AchievementCreate(AchievementBase):
    pass


class Achievement(AchievementBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    earned_at: datetime = Field(default_factory=utcnow, sa_type=UTCTimestamp)


# Saved videos


class SavedVideo(SQLModel, table=True):
    user_id: int = Field(foreign_key="user.id", primary_key=True)
    video_id: int = Field(foreign_key="video.id", primary_key=True)
    saved_at: datetime = Field(default_factory=utcnow, sa_type=UTCTimestamp)
