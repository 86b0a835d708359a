import os
from pathlib import Path
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.auth import AuthenticationService
from core.exceptions import AuthenticationError, PermissionDeniedError
from core.models import User, UserRole
from providers.storage_provider import MemoryStorageProvider, StorageProvider
from services.community_service import CommunityService
from services.media_service import MediaService
from services.video_service import VideoService

bearer_scheme = HTTPBearer(auto_error=False)

storage: Optional[StorageProvider] = None
auth_service: Optional[AuthenticationService] = None
video_service: Optional[VideoService] = None
community_service: Optional[CommunityService] = None
media_service: Optional[MediaService] = None


def create_storage_from_env() -> StorageProvider:
    backend = os.getenv("STORAGE_BACKEND", "memory").lower()
    if backend == "sql":
        from providers.sql_storage_provider import SQLStorageProvider

        return SQLStorageProvider()
    return MemoryStorageProvider()


def init_dependencies(
    storage_provider: Optional[StorageProvider] = None,
    upload_dir: Optional[Path] = None,
) -> StorageProvider:
    """Wire every service to one storage provider"""
    global storage, auth_service, video_service, community_service, media_service
    storage = storage_provider or create_storage_from_env()
    auth_service = AuthenticationService(storage)
    video_service = VideoService(storage)
    community_service = CommunityService(storage)
    media_service = MediaService(upload_dir)
    return storage


def reset_dependencies():
    global storage, auth_service, video_service, community_service, media_service
    storage = auth_service = video_service = community_service = media_service = None


def get_storage() -> StorageProvider:
    if storage is None:
        init_dependencies()
    return storage


def get_auth_service() -> AuthenticationService:
    get_storage()
    return auth_service


def get_video_service() -> VideoService:
    get_storage()
    return video_service


def get_community_service() -> CommunityService:
    get_storage()
    return community_service


def get_media_service() -> MediaService:
    get_storage()
    return media_service


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthenticationService = Depends(get_auth_service),
) -> Optional[User]:
    if credentials is None:
        return None
    return await auth.verify_access_token(credentials.credentials)


async def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise AuthenticationError("Authentication required")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if UserRole(user.role) != UserRole.admin:
        raise PermissionDeniedError("admin")
    return user
