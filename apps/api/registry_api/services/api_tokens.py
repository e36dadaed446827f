from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from registry_api.core.security import hash_token, new_random_token
from registry_api.models.auth import ApiToken
from registry_api.services.users import find_by_api_token

logger = logging.getLogger("registry.api")


def list_tokens(*, session: Session, user_id: UUID) -> list[ApiToken]:
    return (
        session.execute(
            select(ApiToken)
            .where(ApiToken.user_id == user_id)
            .order_by(ApiToken.created_at.desc(), ApiToken.id.desc())
        )
        .scalars()
        .all()
    )


def issue(*, session: Session, user_id: UUID, name: str) -> tuple[ApiToken, str]:
    """Mint a token for `user_id`; the raw secret is only available here."""
    name = name.strip()
    if not name:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail="Token name is required"
        )

    raw = new_random_token()
    token = ApiToken(user_id=user_id, name=name, token_hash=hash_token(raw))
    session.add(token)
    session.flush()

    logger.info("api_token.issued user_id=%s token_id=%s", user_id, token.id)
    return token, raw


def validate(*, session: Session, token: str) -> UUID:
    return find_by_api_token(session=session, token=token).id


def revoke(*, session: Session, token_id: UUID, requesting_user_id: UUID) -> None:
    token = session.get(ApiToken, token_id)
    if token is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="API token not found")
    if token.user_id != requesting_user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your API token")

    session.delete(token)
    session.flush()
    logger.info("api_token.revoked user_id=%s token_id=%s", requesting_user_id, token_id)
