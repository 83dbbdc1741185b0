"""
Blog Service - posts, categories and the admin allow-list.

Visibility rules:
- non-admins only ever see published posts
- admins see drafts too and may create, edit, publish, feature and delete
- at most one post is featured at a time
"""

import logging
import re
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from app.db.postgres import get_db_session, execute_raw_sql, fetch_one, rows_to_dicts

logger = logging.getLogger(__name__)

POST_FIELDS = [
    "title", "slug", "summary", "content", "featured_image_url",
    "author", "author_image_url", "author_title"
]

REQUIRED_POST_FIELDS = [
    ("title", "Title is required"),
    ("slug", "Slug is required"),
    ("content", "Content is required"),
    ("author", "Author is required"),
]


class BlogError(Exception):
    """Blog operation that cannot be applied."""

    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.message = message
        self.status = status


def slugify(title: str) -> str:
    """
    Build a URL slug from a post title.

    "Hello, World!  Again" -> "hello-world-again"
    """
    slug = title.lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip().strip("-")


def validate_post(fields: Dict[str, Any]) -> None:
    """Raise BlogError naming the first missing required field."""
    for field, message in REQUIRED_POST_FIELDS:
        value = fields.get(field)
        if value is None or not str(value).strip():
            raise BlogError(message)


class BlogService:

    def is_admin(self, user_id: Optional[str]) -> bool:
        """Whether `user_id` is on the admin allow-list."""
        if not user_id:
            return False
        return fetch_one("SELECT id FROM admins WHERE id = :id", {"id": user_id}) is not None

    # ============================================================
    # CATEGORIES
    # ============================================================

    def list_categories(self) -> List[dict]:
        return execute_raw_sql("SELECT id, name, slug FROM blog_categories ORDER BY name")

    def _attach_categories(self, db, posts: List[dict]) -> List[dict]:
        for post in posts:
            result = db.execute(
                text("""
                    SELECT c.id, c.name, c.slug
                    FROM blog_post_categories pc JOIN blog_categories c ON pc.category_id = c.id
                    WHERE pc.post_id = :pid ORDER BY c.name
                """),
                {"pid": post["id"]}
            )
            post["categories"] = rows_to_dicts(result)
        return posts

    def _set_categories(self, db, post_id: str, category_ids: List[str]) -> None:
        db.execute(text("DELETE FROM blog_post_categories WHERE post_id = :pid"), {"pid": post_id})
        for category_id in dict.fromkeys(category_ids):
            db.execute(
                text("INSERT INTO blog_post_categories (post_id, category_id) VALUES (:pid, :cid)"),
                {"pid": post_id, "cid": category_id}
            )

    # ============================================================
    # READS
    # ============================================================

    def list_posts(
        self,
        include_drafts: bool = False,
        category: Optional[str] = None,
        q: Optional[str] = None
    ) -> List[dict]:
        """
        Posts newest first, with their categories.

        Args:
            include_drafts: admin view, unpublished posts included
            category: category slug filter
            q: case-insensitive match on title, summary or author
        """
        conditions = []
        params = {}

        if not include_drafts:
            conditions.append("p.is_published = TRUE")
        if category:
            conditions.append("""
                EXISTS (
                    SELECT 1 FROM blog_post_categories pc
                    JOIN blog_categories c ON pc.category_id = c.id
                    WHERE pc.post_id = p.id AND c.slug = :category
                )
            """)
            params["category"] = category
        if q and q.strip():
            conditions.append("""
                (LOWER(p.title) LIKE :q OR LOWER(COALESCE(p.summary, '')) LIKE :q
                 OR LOWER(COALESCE(p.author, '')) LIKE :q)
            """)
            params["q"] = f"%{q.strip().lower()}%"

        sql = "SELECT p.* FROM blog_posts p"
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        sql += " ORDER BY p.published_at DESC, p.created_at DESC"

        with get_db_session() as db:
            posts = rows_to_dicts(db.execute(text(sql), params))
            return self._attach_categories(db, posts)

    def get_featured_post(self, include_drafts: bool = False) -> Optional[dict]:
        sql = "SELECT * FROM blog_posts WHERE is_featured = TRUE"
        if not include_drafts:
            sql += " AND is_published = TRUE"
        return fetch_one(sql)

    def get_post_by_slug(self, slug: str, include_drafts: bool = False) -> dict:
        """
        A post with its categories and up to three related posts.

        Raises BlogError(404) if missing, or if unpublished for a non-admin.
        """
        post = fetch_one("SELECT * FROM blog_posts WHERE slug = :slug", {"slug": slug})
        if post is None:
            raise BlogError("Post not found", status=404)
        if not post["is_published"] and not include_drafts:
            raise BlogError("This post is not available", status=404)

        with get_db_session() as db:
            self._attach_categories(db, [post])
            result = db.execute(
                text("""
                    SELECT * FROM blog_posts
                    WHERE is_published = TRUE AND id != :id
                    ORDER BY published_at DESC
                    LIMIT 3
                """),
                {"id": post["id"]}
            )
            post["related_posts"] = rows_to_dicts(result)
        return post

    def get_post(self, post_id: str) -> Optional[dict]:
        post = fetch_one("SELECT * FROM blog_posts WHERE id = :id", {"id": post_id})
        if post is None:
            return None
        with get_db_session() as db:
            self._attach_categories(db, [post])
        return post

    # ============================================================
    # WRITES (admin only, enforced by the routes)
    # ============================================================

    def create_post(self, fields: Dict[str, Any], category_ids: Optional[List[str]] = None) -> str:
        """Insert a post. A missing slug is derived from the title. Returns the id."""
        fields = dict(fields)
        if not fields.get("slug") and fields.get("title"):
            fields["slug"] = slugify(fields["title"])
        validate_post(fields)

        post_id = str(uuid.uuid4())
        is_published = bool(fields.get("is_published", False))
        is_featured = bool(fields.get("is_featured", False))
        params = {field: fields.get(field) for field in POST_FIELDS}
        params.update({"id": post_id, "is_published": is_published})

        try:
            with get_db_session() as db:
                db.execute(
                    text("""
                        INSERT INTO blog_posts (id, title, slug, summary, content, featured_image_url,
                            author, author_image_url, author_title, is_published, published_at)
                        VALUES (:id, :title, :slug, :summary, :content, :featured_image_url,
                            :author, :author_image_url, :author_title, :is_published,
                            CASE WHEN :is_published THEN CURRENT_TIMESTAMP ELSE NULL END)
                    """),
                    params
                )
                self._set_categories(db, post_id, category_ids or [])
                if is_featured:
                    self._feature(db, post_id)
        except IntegrityError:
            raise BlogError("A post with this slug already exists", status=409)

        logger.info("Created blog post %s (%s)", post_id, fields["slug"])
        return post_id

    def update_post(
        self,
        post_id: str,
        fields: Dict[str, Any],
        category_ids: Optional[List[str]] = None
    ) -> None:
        """Replace a post's editable fields. Raises BlogError on missing post or fields."""
        validate_post(fields)

        params = {field: fields.get(field) for field in POST_FIELDS}
        params["id"] = post_id
        updates = [f"{field} = :{field}" for field in POST_FIELDS]

        if "is_published" in fields:
            params["is_published"] = bool(fields["is_published"])
            updates.append("is_published = :is_published")
            updates.append(
                "published_at = CASE WHEN :is_published THEN COALESCE(published_at, CURRENT_TIMESTAMP) "
                "ELSE published_at END"
            )

        try:
            with get_db_session() as db:
                result = db.execute(
                    text(f"UPDATE blog_posts SET {', '.join(updates)}, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
                    params
                )
                if result.rowcount == 0:
                    raise BlogError("Post not found", status=404)
                if category_ids is not None:
                    self._set_categories(db, post_id, category_ids)
                if "is_featured" in fields:
                    if fields["is_featured"]:
                        self._feature(db, post_id)
                    else:
                        self._unfeature(db, post_id)
        except IntegrityError:
            raise BlogError("A post with this slug already exists", status=409)

    def delete_post(self, post_id: str) -> None:
        with get_db_session() as db:
            db.execute(text("DELETE FROM blog_post_categories WHERE post_id = :id"), {"id": post_id})
            result = db.execute(text("DELETE FROM blog_posts WHERE id = :id"), {"id": post_id})
            if result.rowcount == 0:
                raise BlogError("Post not found", status=404)
        logger.info("Deleted blog post %s", post_id)

    def toggle_published(self, post_id: str) -> bool:
        """Flip is_published. published_at is set the first time a post goes live. Returns the new value."""
        with get_db_session() as db:
            row = db.execute(
                text("SELECT is_published FROM blog_posts WHERE id = :id"), {"id": post_id}
            ).fetchone()
            if row is None:
                raise BlogError("Post not found", status=404)

            published = not bool(row[0])
            db.execute(
                text("""
                    UPDATE blog_posts
                    SET is_published = :published,
                        published_at = CASE WHEN :published THEN COALESCE(published_at, CURRENT_TIMESTAMP)
                                       ELSE published_at END,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id
                """),
                {"id": post_id, "published": published}
            )
        logger.info("Blog post %s published=%s", post_id, published)
        return published

    def toggle_featured(self, post_id: str) -> bool:
        """
        Feature or un-feature a post. Returns the new value.

        Featuring clears every other featured post in the same transaction;
        un-featuring touches only this post.
        """
        try:
            with get_db_session() as db:
                row = db.execute(
                    text("SELECT is_featured FROM blog_posts WHERE id = :id"), {"id": post_id}
                ).fetchone()
                if row is None:
                    raise BlogError("Post not found", status=404)

                featured = not bool(row[0])
                if featured:
                    self._feature(db, post_id)
                else:
                    self._unfeature(db, post_id)
        except IntegrityError:
            # Lost a race with another featuring request
            raise BlogError("Another post was featured at the same time", status=409)
        logger.info("Blog post %s featured=%s", post_id, featured)
        return featured

    def _feature(self, db, post_id: str) -> None:
        # Clear first: uq_blog_posts_single_featured is checked row by row
        db.execute(
            text("UPDATE blog_posts SET is_featured = FALSE WHERE is_featured = TRUE AND id != :id"),
            {"id": post_id}
        )
        db.execute(text("UPDATE blog_posts SET is_featured = TRUE WHERE id = :id"), {"id": post_id})

    def _unfeature(self, db, post_id: str) -> None:
        db.execute(text("UPDATE blog_posts SET is_featured = FALSE WHERE id = :id"), {"id": post_id})


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_blog_service() -> BlogService:
    """Get blog service instance."""
    return BlogService()
