#!/usr/bin/env python3
"""
Connection Check Script

Run this to verify both stores are reachable and the schema exists.
Usage: python scripts/check_connections.py
"""
import sys
sys.path.insert(0, '.')

from app.core.config import get_settings
from app.core.logging import setup_logging
from app.db.postgres import test_postgres_connection
from app.db.mongodb import test_mongo_connection, init_mongo_indexes
from app.db.tables import init_db


def main():
    setup_logging()
    settings = get_settings()
    print("=" * 50)
    print("UPSTART - CONNECTION CHECK")
    print("=" * 50)

    # Relational store
    print("\n[1] Checking relational store...")
    if settings.database_url:
        print("    URL: (DATABASE_URL override)")
    else:
        print(f"    URL: postgresql://{settings.postgres_user}:****@{settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}")
    postgres_ok = test_postgres_connection()
    if postgres_ok:
        init_db()
        print("    ✅ Relational store: CONNECTED (tables ready)")
    else:
        print("    ❌ Relational store: FAILED")

    # Blob store
    print("\n[2] Checking MongoDB (GridFS)...")
    print(f"    URI: {settings.mongodb_uri}")
    print(f"    Database: {settings.mongodb_db}")
    mongo_ok = test_mongo_connection()
    if mongo_ok:
        init_mongo_indexes()
        print("    ✅ MongoDB: CONNECTED (indexes ready)")
    else:
        print("    ❌ MongoDB: FAILED")

    print("\n" + "=" * 50)
    print("Connection check complete!")
    print("=" * 50)
    return 0 if postgres_ok and mongo_ok else 1


if __name__ == "__main__":
    sys.exit(main())
