"""
Cloudinary object storage for uploaded and generated documents
"""
import asyncio
import io
import logging
import os
from typing import Optional

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from starlette.concurrency import run_in_threadpool

from app.core.config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Upload rejected or failed at the storage provider"""


class UploadTimeoutError(StorageError):
    """Upload did not finish within the configured budget"""


class StorageService:
    """Thin async wrapper over the blocking Cloudinary SDK"""

    def __init__(self):
        self.configured = False

    def configure(self):
        """Apply credentials once at startup"""
        if not (settings.CLOUDINARY_CLOUD_NAME and settings.CLOUDINARY_API_KEY and settings.CLOUDINARY_API_SECRET):
            logger.warning("Cloudinary credentials not set. File uploads will fail.")
            return
        cloudinary.config(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            secure=True
        )
        self.configured = True
        logger.info(f"Cloudinary configured for cloud {settings.CLOUDINARY_CLOUD_NAME}")

    async def upload_bytes(
        self,
        content: bytes,
        file_name: str,
        folder: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> str:
        """Upload content and return its secure URL"""
        if not content:
            raise StorageError("Cannot upload an empty file")
        if len(content) > settings.MAX_UPLOAD_BYTES:
            raise StorageError("File size exceeds the upload limit")

        public_id, _ = os.path.splitext(file_name)
        budget = timeout or settings.UPLOAD_TIMEOUT_SECONDS

        try:
            result = await asyncio.wait_for(
                run_in_threadpool(
                    cloudinary.uploader.upload,
                    io.BytesIO(content),
                    resource_type="auto",
                    folder=folder or settings.CLOUDINARY_FOLDER,
                    public_id=public_id,
                    timeout=budget
                ),
                timeout=budget
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Upload of {file_name} exceeded {budget}s")
            raise UploadTimeoutError("Upload timeout - Operation took longer than expected") from e
        except CloudinaryError as e:
            logger.error(f"Cloudinary rejected {file_name}: {e}")
            raise StorageError(f"Storage error: {e}") from e

        url = result.get("secure_url")
        if not url:
            raise StorageError("Storage provider returned no URL")
        logger.info(f"Uploaded {file_name} ({len(content)} bytes)")
        return url


storage_service = StorageService()
