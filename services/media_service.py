"""
Media storage for uploaded videos.

Uploaded files are written to a local directory under a unique name and
exposed to clients below `/uploads`.
"""

import os
import random
import shutil
import time
import logging
from pathlib import Path
from typing import Optional

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from core.exceptions import ValidationError

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = "/uploads"


def get_upload_dir() -> Path:
    return Path(os.getenv("UPLOAD_DIR", "./uploads"))


class MediaService:
    """Stores uploaded media files and hands back their public URL"""

    def __init__(self, upload_dir: Optional[Path] = None):
        self.upload_dir = Path(upload_dir) if upload_dir else get_upload_dir()

    def _unique_name(self, original: str) -> str:
        suffix = Path(original).suffix.lower()
        return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{suffix}"

    async def store(self, upload: UploadFile) -> str:
        """Persist an uploaded file and return the URL it is served from"""
        if upload is None or not upload.filename:
            raise ValidationError("video", None, "No video file uploaded")

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        filename = self._unique_name(upload.filename)
        destination = self.upload_dir / filename

        def _write():
            with open(destination, "wb") as out:
                shutil.copyfileobj(upload.file, out)

        await run_in_threadpool(_write)
        logger.info(
            f"Stored upload {upload.filename} as {filename}",
            extra={"original_filename": upload.filename, "stored_as": filename},
        )
        return f"{UPLOAD_URL_PREFIX}/{filename}"

    def path_for(self, filename: str) -> Optional[Path]:
        """Local path of a stored upload, or None if there is no such file"""
        if Path(filename).name != filename:
            return None
        path = self.upload_dir / filename
        return path if path.is_file() else None

    def discard(self, url: str) -> None:
        """Remove a stored file again, e.g. when the video record was not created"""
        path = self.upload_dir / Path(url).name
        try:
            path.unlink()
        except FileNotFoundError:
            pass
