from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from registry_api.core.crypto import decrypt_text, encrypt_text
from registry_api.core.security import hash_token
from registry_api.db.upsert import dialect_insert
from registry_api.models.auth import ApiToken
from registry_api.models.identity import User


def _access_token_aad(external_id: int) -> bytes:
    return f"users:github:{external_id}:access_token".encode()


def reconcile(
    *,
    session: Session,
    external_id: int,
    login: str,
    email: str | None,
    name: str | None,
    avatar_url: str | None,
    access_token: str,
) -> User:
    """Insert or refresh the user linked to an external account.

    One `INSERT .. ON CONFLICT (external_id) DO UPDATE` statement, so two
    concurrent logins for the same account converge on a single row. The
    internal id and every api_tokens row are left untouched on update.
    """
    stmt = dialect_insert(session, User).values(
        external_id=external_id,
        login=login,
        email=email,
        display_name=name,
        avatar_url=avatar_url,
        encrypted_access_token=encrypt_text(access_token, aad=_access_token_aad(external_id)),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[User.external_id],
        set_={
            "login": stmt.excluded.login,
            "email": stmt.excluded.email,
            "display_name": stmt.excluded.display_name,
            "avatar_url": stmt.excluded.avatar_url,
            "encrypted_access_token": stmt.excluded.encrypted_access_token,
            "updated_at": func.now(),
        },
    ).returning(User)

    return session.scalars(stmt, execution_options={"populate_existing": True}).one()


def external_access_token_for(user: User) -> str:
    return decrypt_text(user.encrypted_access_token, aad=_access_token_aad(user.external_id))


def find_by_id(*, session: Session, user_id: UUID) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def find_by_login(*, session: Session, login: str) -> User:
    # Logins can be renamed upstream, so more than one row may carry the same login.
    user = (
        session.execute(
            select(User)
            .where(User.login == login)
            .order_by(User.updated_at.desc(), User.created_at.desc())
        )
        .scalars()
        .first()
    )
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def find_by_api_token(*, session: Session, token: str) -> User:
    token_hash = hash_token(token)
    row = session.execute(
        select(User, ApiToken.id)
        .join(ApiToken, ApiToken.user_id == User.id)
        .where(ApiToken.token_hash == token_hash)
    ).first()
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="API token not found")

    user, token_id = row
    # Advisory only; rides along with whatever transaction the request commits.
    session.execute(
        update(ApiToken)
        .where(ApiToken.id == token_id)
        .values(last_used_at=datetime.now(UTC))
    )
    return user
