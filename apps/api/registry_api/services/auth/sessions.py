from __future__ import annotations

from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from registry_api.core.config import get_settings
from registry_api.core.security import hash_token, new_random_token
from registry_api.models.auth import AuthSession
from registry_api.models.identity import User


def create_session(*, session: Session, user: User) -> tuple[str, AuthSession]:
    settings = get_settings()

    token = new_random_token()
    now = datetime.now(UTC)
    auth_session = AuthSession(
        user_id=user.id,
        token_hash=hash_token(token),
        expires_at=now + timedelta(seconds=settings.SESSION_TTL_SECONDS),
    )
    session.add(auth_session)
    session.flush()
    return token, auth_session


def find_active_session(*, session: Session, token: str) -> AuthSession | None:
    now = datetime.now(UTC)
    return (
        session.execute(
            select(AuthSession).where(
                AuthSession.token_hash == hash_token(token),
                AuthSession.revoked_at.is_(None),
                AuthSession.expires_at > now,
            )
        )
        .scalars()
        .first()
    )


def revoke_session(
    *,
    session: Session,
    auth_session: AuthSession,
    reason: str,
) -> None:
    auth_session.revoked_at = datetime.now(UTC)
    auth_session.revoked_reason = reason
    session.add(auth_session)
