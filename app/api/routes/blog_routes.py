"""
Blog Routes

Public:
GET /blog/categories - List categories
GET /blog/posts - Posts (published only unless admin), ?category=slug&q=text
GET /blog/posts/{slug} - Post with categories and related posts

Admin only:
POST /blog/manage - Create post
GET /blog/manage/{post_id} - Post for editing
PUT /blog/manage/{post_id} - Update post
DELETE /blog/manage/{post_id} - Delete post
POST /blog/manage/{post_id}/publish - Toggle published
POST /blog/manage/{post_id}/feature - Toggle featured
POST /blog/images - Upload featured image
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query, UploadFile, File

from app.core.auth import get_optional_session, require_admin
from app.core.identity import Session
from app.utils.file_upload import read_upload
from app.services.blog_service import BlogError, get_blog_service
from app.services.storage_service import StorageError, get_blob_store, blog_image_path
from app.schemas.schemas import BlogPostWrite, BlogImageResponse, MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blog", tags=["Blog"])


def _is_admin(session: Optional[Session]) -> bool:
    return session is not None and get_blog_service().is_admin(session.user.id)


# ============================================================
# PUBLIC
# ============================================================

@router.get("/categories", response_model=List[dict])
async def list_categories():
    return get_blog_service().list_categories()


@router.get("/posts")
async def list_posts(
    category: Optional[str] = Query(None),
    q: Optional[str] = Query(None),
    session: Optional[Session] = Depends(get_optional_session)
):
    """
    Blog index.

    `is_admin` tells the client whether to show drafts and edit controls.
    Drafts are only included for admins.
    """
    is_admin = _is_admin(session)
    blog = get_blog_service()
    return {
        "posts": blog.list_posts(include_drafts=is_admin, category=category, q=q),
        "featured": blog.get_featured_post(include_drafts=is_admin),
        "is_admin": is_admin,
    }


@router.get("/posts/{slug}")
async def get_post(slug: str, session: Optional[Session] = Depends(get_optional_session)):
    is_admin = _is_admin(session)
    try:
        post = get_blog_service().get_post_by_slug(slug, include_drafts=is_admin)
    except BlogError as e:
        raise HTTPException(status_code=e.status, detail=e.message)
    return {"post": post, "is_admin": is_admin}


# ============================================================
# ADMIN
# ============================================================

@router.post("/manage", status_code=201)
async def create_post(data: BlogPostWrite, admin: Session = Depends(require_admin)):
    """Create a post. An empty slug is generated from the title."""
    blog = get_blog_service()
    try:
        post_id = blog.create_post(data.model_dump(exclude={"category_ids"}), data.category_ids)
    except BlogError as e:
        raise HTTPException(status_code=e.status, detail=e.message)
    return blog.get_post(post_id)


@router.get("/manage/{post_id}")
async def get_post_for_edit(post_id: str, admin: Session = Depends(require_admin)):
    post = get_blog_service().get_post(post_id)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


@router.put("/manage/{post_id}", response_model=MessageResponse)
async def update_post(post_id: str, data: BlogPostWrite, admin: Session = Depends(require_admin)):
    try:
        get_blog_service().update_post(
            post_id, data.model_dump(exclude={"category_ids"}), data.category_ids
        )
    except BlogError as e:
        raise HTTPException(status_code=e.status, detail=e.message)
    return MessageResponse(message="Post updated successfully")


@router.delete("/manage/{post_id}", response_model=MessageResponse)
async def delete_post(post_id: str, admin: Session = Depends(require_admin)):
    try:
        get_blog_service().delete_post(post_id)
    except BlogError as e:
        raise HTTPException(status_code=e.status, detail=e.message)
    return MessageResponse(message="Post deleted successfully")


@router.post("/manage/{post_id}/publish")
async def toggle_published(post_id: str, admin: Session = Depends(require_admin)):
    try:
        published = get_blog_service().toggle_published(post_id)
    except BlogError as e:
        raise HTTPException(status_code=e.status, detail=e.message)
    return {"id": post_id, "is_published": published}


@router.post("/manage/{post_id}/feature")
async def toggle_featured(post_id: str, admin: Session = Depends(require_admin)):
    """Feature a post (un-featuring any other) or un-feature it."""
    try:
        featured = get_blog_service().toggle_featured(post_id)
    except BlogError as e:
        raise HTTPException(status_code=e.status, detail=e.message)
    return {"id": post_id, "is_featured": featured}


@router.post("/images", response_model=BlogImageResponse)
async def upload_image(
    file: UploadFile = File(...),
    admin: Session = Depends(require_admin),
    store=Depends(get_blob_store)
):
    """Upload a featured image to the blog_picture bucket."""
    content, content_type = await read_upload(file, "image")
    path = blog_image_path(file.filename)

    try:
        store.upload("blog_picture", path, content, content_type)
    except StorageError as e:
        raise HTTPException(status_code=e.status, detail=e.message)

    logger.info("Admin %s uploaded blog image %s", admin.user.id, path)
    return BlogImageResponse(success=True, url=store.get_public_url("blog_picture", path))
