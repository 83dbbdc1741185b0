"""
Storage Routes

GET /storage/{bucket}/{path} - Serve a stored file (public URLs point here)
"""

from fastapi import APIRouter, HTTPException, Depends
from fastapi.responses import Response

from app.services.storage_service import StorageError, get_blob_store

router = APIRouter(prefix="/storage", tags=["Storage"])


@router.get("/{bucket}/{path:path}")
async def get_file(bucket: str, path: str, store=Depends(get_blob_store)):
    try:
        found = store.open(bucket, path)
    except StorageError as e:
        raise HTTPException(status_code=e.status, detail=e.message)

    if found is None:
        raise HTTPException(status_code=404, detail="File not found")

    content, content_type = found
    return Response(content=content, media_type=content_type)
