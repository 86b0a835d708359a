"""
Uploaded media.

Serves files below `/uploads` from the directory the active `MediaService`
writes to, so stored uploads and served uploads always agree.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from core.exceptions import NotFoundError
from services.media_service import UPLOAD_URL_PREFIX, MediaService
from .dependencies import get_media_service

router = APIRouter(prefix=UPLOAD_URL_PREFIX, tags=["Media"])


@router.get("/{filename}")
def get_upload(filename: str, media: MediaService = Depends(get_media_service)):
    path = media.path_for(filename)
    if path is None:
        raise NotFoundError(filename, entity="upload")
    return FileResponse(path)
