"""
Storage Service - blob store for uploaded files.

Contract:
- upload(bucket, path, data, content_type)   store a file, fails if path exists
- get_public_url(bucket, path)               URL served by GET /api/storage/...
- open(bucket, path)                         (bytes, content_type) or None

Buckets: resume, blog_picture, company_logo.
"""

import logging
import time
from typing import Optional, Tuple

from gridfs.errors import FileExists, NoFile
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.core.config import get_settings
from app.db.mongodb import BUCKETS, get_gridfs_bucket
from app.utils.file_upload import get_file_extension

logger = logging.getLogger(__name__)

settings = get_settings()

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class StorageError(Exception):
    """Blob store failure."""

    def __init__(self, message: str, status: int = 500):
        super().__init__(message)
        self.message = message
        self.status = status


def public_url(bucket: str, path: str) -> str:
    return f"{settings.public_base_url.rstrip('/')}/api/storage/{bucket}/{path.lstrip('/')}"


def resume_path(user_id: str, filename: str) -> str:
    """resume bucket: {user_id}/resume_{millis}{ext}"""
    return f"{user_id}/resume_{int(time.time() * 1000)}{get_file_extension(filename)}"


def blog_image_path(filename: str) -> str:
    """blog_picture bucket: featured/{millis}{ext}"""
    return f"featured/{int(time.time() * 1000)}{get_file_extension(filename)}"


def logo_path(user_id: str, filename: str) -> str:
    """company_logo bucket: {user_id}/logo_{millis}{ext}"""
    return f"{user_id}/logo_{int(time.time() * 1000)}{get_file_extension(filename)}"


class GridFSBlobStore:
    """Blob store on MongoDB GridFS."""

    def _bucket(self, bucket: str):
        if bucket not in BUCKETS:
            raise StorageError(f"Bucket not found: {bucket}", status=404)
        return get_gridfs_bucket(bucket)

    def upload(self, bucket: str, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Store `data` at `path`. Returns the stored path."""
        fs = self._bucket(bucket)
        try:
            fs.upload_from_stream(
                path, data,
                metadata={"content_type": content_type or DEFAULT_CONTENT_TYPE}
            )
        except (DuplicateKeyError, FileExists):
            raise StorageError("The resource already exists", status=409)
        except PyMongoError as e:
            logger.exception("Upload to %s/%s failed", bucket, path)
            raise StorageError(f"Upload failed: {e}")
        logger.info("Stored %s/%s (%d bytes)", bucket, path, len(data))
        return path

    def get_public_url(self, bucket: str, path: str) -> str:
        return public_url(bucket, path)

    def open(self, bucket: str, path: str) -> Optional[Tuple[bytes, str]]:
        fs = self._bucket(bucket)
        try:
            stream = fs.open_download_stream_by_name(path)
        except NoFile:
            return None
        metadata = stream.metadata or {}
        return stream.read(), metadata.get("content_type", DEFAULT_CONTENT_TYPE)


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_blob_store() -> GridFSBlobStore:
    """Get blob store instance. Routes take it as a dependency."""
    return GridFSBlobStore()
