import json
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from app.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def _engine_options(url: str) -> dict:
    # SQLite (tests, local dev) has no server-side pool to size
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    # pool_size=5: maintain 5 connections ready
    # max_overflow=10: allow 10 extra connections under load
    return {"pool_size": 5, "max_overflow": 10, "pool_pre_ping": True}


engine = create_engine(
    settings.postgres_url,
    echo=settings.debug,  # Log SQL queries in debug mode
    **_engine_options(settings.postgres_url)
)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.
    Everything executed inside the block is one transaction.
    Usage:
        with get_db_session() as db:
            db.execute(text("SELECT * FROM users"))
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def test_postgres_connection() -> bool:
    """
    Test if the relational store is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        with get_db_session() as db:
            result = db.execute(text("SELECT 1 as test"))
            row = result.fetchone()
            return row[0] == 1
    except Exception:
        logger.exception("Relational store connection failed")
        return False


def rows_to_dicts(result) -> list:
    """Convert a SQLAlchemy result to a list of dicts."""
    columns = list(result.keys())
    return [dict(zip(columns, row)) for row in result.fetchall()]


def execute_raw_sql(sql: str, params: dict = None) -> list:
    """
    Execute raw SQL and return results as list of dicts.
    This is useful for reads that join several tables.
    """
    with get_db_session() as db:
        result = db.execute(text(sql), params or {})
        return rows_to_dicts(result)


def fetch_one(sql: str, params: dict = None):
    """Execute raw SQL and return the first row as a dict, or None."""
    rows = execute_raw_sql(sql, params)
    return rows[0] if rows else None


def dump_json(value) -> str:
    """Serialize a value for a JSON column bound through text()."""
    return json.dumps(value)


def load_json(value, default=None):
    """
    Read a JSON column.
    PostgreSQL drivers return decoded objects, SQLite returns the raw string.
    """
    if value is None:
        return default
    if isinstance(value, (bytes, str)):
        try:
            return json.loads(value)
        except ValueError:
            return default
    return value
