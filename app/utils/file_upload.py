"""
File Upload Utility - validate uploaded files before they reach the blob store.

Upload kinds:
- resume: PDF, DOC, DOCX
- image:  PNG, JPG, JPEG, GIF, WEBP (blog pictures, company logos)

Max file size comes from settings.max_upload_mb.
"""

from typing import Tuple
from fastapi import UploadFile, HTTPException

from app.core.config import get_settings

settings = get_settings()

ALLOWED_EXTENSIONS = {
    "resume": {'.pdf', '.doc', '.docx'},
    "image": {'.png', '.jpg', '.jpeg', '.gif', '.webp'},
}

CONTENT_TYPES = {
    '.pdf': 'application/pdf',
    '.doc': 'application/msword',
    '.docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.gif': 'image/gif',
    '.webp': 'image/webp',
}


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


async def read_upload(file: UploadFile, kind: str) -> Tuple[bytes, str]:
    """
    Read and validate an uploaded file.

    Args:
        file: FastAPI UploadFile
        kind: "resume" or "image"

    Returns:
        Tuple of (content, content_type)

    Raises:
        HTTPException on validation errors
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    ext = get_file_extension(file.filename)
    allowed = ALLOWED_EXTENSIONS[kind]
    if ext not in allowed:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{ext}'. Allowed: {', '.join(sorted(allowed))}"
        )

    content = await file.read()

    if not content:
        raise HTTPException(status_code=400, detail="File is empty")

    if len(content) > settings.max_upload_mb * 1024 * 1024:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {settings.max_upload_mb}MB"
        )

    return content, CONTENT_TYPES.get(ext, file.content_type or "application/octet-stream")
