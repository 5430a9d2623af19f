# Overview: Bearer session lifecycle: issue, validate, and revoke hashed tokens.

"""
Bearer session tokens.

The client holds a random 64-hex-character token; the database keeps only
its SHA-256 digest. A session ends at the absolute timeout, after the idle
timeout, on logout, or when its user is deactivated or removed.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from ..errors import NotFoundError
from ..extensions import db
from ..models import SessionToken, User
from oms.time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(days=30)
SESSION_IDLE_TIMEOUT = timedelta(hours=24)


@dataclass
class SessionContext:
    user: User
    session: SessionToken


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _live_session(token: str) -> SessionToken | None:
    return (
        db.session.query(SessionToken)
        .filter_by(token_hash=hash_token(token), is_revoked=False)
        .first()
    )


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """Issue a session for the user. Returns (record, plaintext token)."""
    if db.session.get(User, user_id) is None:
        raise NotFoundError("User not found")

    token = generate_token()
    now = utcnow()
    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()
    return session, token


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a token to its user, or None.

    An idle or orphaned session is revoked on the way out so later lookups
    fail fast. A successful lookup touches last_used_at.
    """
    session = _live_session(token)
    if session is None:
        return None

    now = utcnow()
    if session.expires_at < now:
        return None
    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        _revoke(session, "Idle timeout")
        return None

    user = session.user
    if user is None or not user.is_active:
        _revoke(session, "User account deactivated")
        return None

    session.last_used_at = now
    db.session.commit()
    return SessionContext(user=user, session=session)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Revoke a live session. False when the token is unknown or already revoked."""
    session = _live_session(token)
    if session is None:
        return False
    _revoke(session, reason)
    return True
