"""
MongoDB Connection Utility - blob store.

Uploaded files (resumes, blog pictures, company logos) live in GridFS.
Each logical bucket is one GridFS bucket in the upstart_files database.
"""
import logging

from gridfs import GridFSBucket
from pymongo import MongoClient
from pymongo.database import Database
from app.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None

# Bucket name constants (avoid typos)
BUCKETS = {
    "resume": "resume",
    "blog_picture": "blog_picture",
    "company_logo": "company_logo"
}


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(settings.mongodb_uri)
    return _client


def get_mongo_db() -> Database:
    """Get the upstart_files database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[settings.mongodb_db]
    return _db


def get_gridfs_bucket(name: str) -> GridFSBucket:
    """Get a GridFS bucket by logical bucket name."""
    return GridFSBucket(get_mongo_db(), bucket_name=BUCKETS[name])


def test_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        client = get_mongo_client()
        # ping command checks connection
        client.admin.command('ping')
        return True
    except Exception:
        logger.exception("MongoDB connection failed")
        return False


def init_mongo_indexes():
    """
    Create indexes for path lookups.
    Call this once during app startup.
    """
    db = get_mongo_db()

    # One file per path within a bucket
    for bucket in BUCKETS.values():
        db[f"{bucket}.files"].create_index("filename", unique=True)

    logger.info("MongoDB indexes created successfully")
