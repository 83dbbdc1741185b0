#!/usr/bin/env python3
"""
Admin Allow-List Script

Grant or revoke blog admin rights for an existing user.
Usage:
    python scripts/create_admin.py someone@example.org
    python scripts/create_admin.py someone@example.org --revoke
"""
import argparse
import sys
sys.path.insert(0, '.')

from sqlalchemy import text

from app.db.postgres import get_db_session, fetch_one


def main():
    parser = argparse.ArgumentParser(description="Manage the blog admin allow-list")
    parser.add_argument("email")
    parser.add_argument("--revoke", action="store_true", help="remove instead of add")
    args = parser.parse_args()

    user = fetch_one("SELECT id FROM users WHERE email = :email", {"email": args.email.strip().lower()})
    if not user:
        print(f"❌ No user registered with {args.email}")
        return 1

    with get_db_session() as db:
        if args.revoke:
            db.execute(text("DELETE FROM admins WHERE id = :id"), {"id": user["id"]})
            print(f"✅ Revoked admin rights for {args.email}")
        else:
            db.execute(
                text("INSERT INTO admins (id) VALUES (:id) ON CONFLICT (id) DO NOTHING"),
                {"id": user["id"]}
            )
            print(f"✅ {args.email} is now a blog admin")
    return 0


if __name__ == "__main__":
    sys.exit(main())
