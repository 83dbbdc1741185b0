"""
Identity Provider - users, sessions and per-user metadata.

Operations:
- sign_up(email, password, metadata)         create a user
- sign_in_with_password(email, password)    issue a session
- get_session(token)                         validate a token, load its user
- get_user(user_id)                          fresh read of the user record
- update_user(user_id, metadata)             merge keys into user_metadata
- sign_out(session_id)                       revoke a session

Failures raise IdentityProviderError carrying an HTTP-style status.

Sessions are JWTs whose `sid` claim points at an auth_sessions row, so a
signed-out token stops resolving before it expires. Session issuance is
throttled per user; exceeding the limit raises a 429 error.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import text

from app.core.config import get_settings
from app.core.identity import Session, SessionUser
from app.core.security import hash_password, verify_password, create_access_token, decode_token
from app.db.postgres import get_db_session, fetch_one, dump_json, load_json

logger = logging.getLogger(__name__)

settings = get_settings()

MIN_PASSWORD_LENGTH = 6


class IdentityProviderError(Exception):
    """Failure reported by the identity provider."""

    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.message = message
        self.status = status


def _timestamp(moment: datetime) -> str:
    # Fixed-width so string comparison orders correctly on every backend
    return moment.strftime("%Y-%m-%dT%H:%M:%S.%f")


def _to_user(row: dict) -> SessionUser:
    return SessionUser(
        id=row["id"],
        email=row["email"],
        user_metadata=load_json(row["user_metadata"], default={}) or {}
    )


class IdentityProvider:
    """Identity provider backed by the users/auth_sessions tables."""

    # ============================================================
    # USERS
    # ============================================================

    def sign_up(self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None) -> SessionUser:
        """Create a user. Raises if the email is already registered."""
        email = email.strip().lower()
        if len(password) < MIN_PASSWORD_LENGTH:
            raise IdentityProviderError(
                f"Password should be at least {MIN_PASSWORD_LENGTH} characters", status=400
            )

        user_id = str(uuid.uuid4())
        with get_db_session() as db:
            existing = db.execute(
                text("SELECT id FROM users WHERE email = :email"),
                {"email": email}
            ).fetchone()
            if existing:
                raise IdentityProviderError("User already registered", status=400)

            db.execute(
                text("""
                    INSERT INTO users (id, email, password_hash, user_metadata, metadata_version)
                    VALUES (:id, :email, :password_hash, :metadata, 0)
                """),
                {
                    "id": user_id,
                    "email": email,
                    "password_hash": hash_password(password),
                    "metadata": dump_json(metadata or {})
                }
            )

        logger.info("Registered user %s", user_id)
        return SessionUser(id=user_id, email=email, user_metadata=metadata or {})

    def get_user(self, user_id: str) -> Optional[SessionUser]:
        """Fresh read of a user record, or None if it does not exist."""
        row = fetch_one(
            "SELECT id, email, user_metadata FROM users WHERE id = :id",
            {"id": user_id}
        )
        return _to_user(row) if row else None

    def update_user(
        self,
        user_id: str,
        metadata: Dict[str, Any],
        only_if_unset: Optional[str] = None,
        db=None
    ) -> SessionUser:
        """
        Merge `metadata` into the user's metadata blob.

        The write is a compare-and-set on metadata_version. With
        `only_if_unset`, nothing is written when that key already holds a
        value, so assigning a write-once attribute twice is a no-op.
        Pass `db` to make the write part of the caller's transaction.
        """
        if db is None:
            with get_db_session() as db:
                return self.update_user(user_id, metadata, only_if_unset, db=db)

        row = db.execute(
            text("SELECT user_metadata, metadata_version FROM users WHERE id = :id"),
            {"id": user_id}
        ).fetchone()
        if not row:
            raise IdentityProviderError("User not found", status=404)

        current = load_json(row[0], default={}) or {}
        if only_if_unset and current.get(only_if_unset):
            logger.info("Skipped metadata update for %s: %s already set", user_id, only_if_unset)
        else:
            merged = {**current, **metadata}
            result = db.execute(
                text("""
                    UPDATE users
                    SET user_metadata = :metadata,
                        metadata_version = metadata_version + 1,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id AND metadata_version = :version
                """),
                {"id": user_id, "metadata": dump_json(merged), "version": row[1]}
            )
            if result.rowcount == 0 and not only_if_unset:
                raise IdentityProviderError("User was modified concurrently", status=409)

        # A lost compare-and-set under only_if_unset means another writer got
        # there first; the re-read below reports whatever it stored.
        user = db.execute(
            text("SELECT id, email, user_metadata FROM users WHERE id = :id"),
            {"id": user_id}
        ).mappings().fetchone()
        if user is None:
            raise IdentityProviderError("User not found", status=404)
        return _to_user(user)

    # ============================================================
    # SESSIONS
    # ============================================================

    def sign_in_with_password(self, email: str, password: str) -> Session:
        """Verify credentials and issue a new session."""
        row = fetch_one(
            "SELECT id, email, password_hash, user_metadata FROM users WHERE email = :email",
            {"email": email.strip().lower()}
        )
        if not row or not verify_password(password, row["password_hash"]):
            raise IdentityProviderError("Invalid login credentials", status=401)

        return self.create_session(_to_user(row))

    def create_session(self, user: SessionUser) -> Session:
        """Issue a session for `user`, enforcing the per-user issuance limit."""
        now = datetime.utcnow()
        since = now - timedelta(seconds=settings.session_rate_window_seconds)
        session_id = str(uuid.uuid4())

        with get_db_session() as db:
            issued = db.execute(
                text("""
                    SELECT COUNT(*) FROM auth_sessions
                    WHERE user_id = :user_id AND issued_at >= :since
                """),
                {"user_id": user.id, "since": _timestamp(since)}
            ).scalar()
            if issued >= settings.session_rate_limit:
                logger.warning("Session rate limit hit for user %s", user.id)
                raise IdentityProviderError("429: Too Many Requests", status=429)

            db.execute(
                text("""
                    INSERT INTO auth_sessions (id, user_id, issued_at, revoked)
                    VALUES (:id, :user_id, :issued_at, FALSE)
                """),
                {"id": session_id, "user_id": user.id, "issued_at": _timestamp(now)}
            )

        token = create_access_token(data={"sub": user.id, "sid": session_id})
        return Session(access_token=token, session_id=session_id, user=user)

    def get_session(self, token: Optional[str]) -> Optional[Session]:
        """Resolve a token to a live session, or None."""
        if not token:
            return None
        payload = decode_token(token)
        if not payload or not payload.get("sub") or not payload.get("sid"):
            return None

        row = fetch_one(
            """
                SELECT u.id, u.email, u.user_metadata
                FROM auth_sessions s JOIN users u ON s.user_id = u.id
                WHERE s.id = :sid AND s.user_id = :uid AND s.revoked = FALSE
            """,
            {"sid": payload["sid"], "uid": payload["sub"]}
        )
        if not row:
            return None
        return Session(access_token=token, session_id=payload["sid"], user=_to_user(row))

    def refresh_session(self, session: Session) -> Session:
        """Re-read the user behind a session so metadata writes are visible."""
        user = self.get_user(session.user.id)
        if user is None:
            raise IdentityProviderError("User not found", status=404)
        return Session(access_token=session.access_token, session_id=session.session_id, user=user)

    def sign_out(self, session_id: str) -> None:
        """Revoke a session."""
        with get_db_session() as db:
            db.execute(
                text("UPDATE auth_sessions SET revoked = TRUE WHERE id = :id"),
                {"id": session_id}
            )
        logger.info("Revoked session %s", session_id)


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_identity_provider() -> IdentityProvider:
    """Get identity provider instance."""
    return IdentityProvider()
