"""
Community Endpoints.

Users, leaderboard, comments, challenges and achievements.

Endpoints Provided:
- `GET /api/users/{id}`, `GET /api/users/username/{username}`
- `GET /api/leaderboard`: Users by points, highest first.
- `POST /api/comments`, `GET /api/videos/{video_id}/comments`
- `POST /api/challenges` (admin), `GET /api/challenges`,
  `GET /api/challenges/active`
- `POST /api/achievements` (admin), `GET /api/users/{id}/achievements`
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query

from core.models import (
    Achievement,
    AchievementCreate,
    Challenge,
    ChallengeCreate,
    Comment,
    CommentCreate,
    UserPublic,
)
from services.community_service import CommunityService
from .dependencies import get_community_service, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Community"])


# Users


@router.get("/users/username/{username}", response_model=UserPublic)
async def get_user_by_username(
    username: str, community: CommunityService = Depends(get_community_service)
):
    return await community.get_user_by_username(username)


@router.get("/users/{user_id}", response_model=UserPublic)
async def get_user(
    user_id: int, community: CommunityService = Depends(get_community_service)
):
    return await community.get_user(user_id)


@router.get("/leaderboard", response_model=List[UserPublic])
async def leaderboard(
    limit: int = Query(10, ge=1, le=100),
    community: CommunityService = Depends(get_community_service),
):
    return await community.leaderboard(limit)


# Comments


@router.post("/comments", response_model=Comment, status_code=201)
async def create_comment(
    request: CommentCreate,
    community: CommunityService = Depends(get_community_service),
):
    return await community.post_comment(request)


@router.get("/videos/{video_id}/comments", response_model=List[Comment])
async def list_comments(
    video_id: int, community: CommunityService = Depends(get_community_service)
):
    return await community.list_comments(video_id)


# Challenges


@router.post(
    "/challenges",
    response_model=Challenge,
    status_code=201,
    dependencies=[Depends(require_admin)],
)
async def create_challenge(
    request: ChallengeCreate,
    community: CommunityService = Depends(get_community_service),
):
    return await community.create_challenge(request)


@router.get("/challenges/active", response_model=Challenge)
async def get_active_challenge(
    community: CommunityService = Depends(get_community_service),
):
    return await community.get_active_challenge()


@router.get("/challenges", response_model=List[Challenge])
async def list_challenges(community: CommunityService = Depends(get_community_service)):
    return await community.list_challenges()


# Achievements


@router.post(
    "/achievements",
    response_model=Achievement,
    status_code=201,
    dependencies=[Depends(require_admin)],
)
async def create_achievement(
    request: AchievementCreate,
    community: CommunityService = Depends(get_community_service),
):
    return await community.grant_achievement(request)


@router.get("/users/{user_id}/achievements", response_model=List[Achievement])
async def list_achievements(
    user_id: int, community: CommunityService = Depends(get_community_service)
):
    return await community.list_achievements(user_id)
