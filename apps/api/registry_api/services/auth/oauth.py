from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import httpx
from fastapi import HTTPException, status
from sqlalchemy import delete, or_, update
from sqlalchemy.orm import Session

from registry_api.core.config import get_settings
from registry_api.core.security import new_random_token
from registry_api.models.identity import User
from registry_api.models.oauth import OAuthState
from registry_api.services.github.oauth import (
    build_authorization_url,
    exchange_code_for_token,
    fetch_profile,
)
from registry_api.services.users import reconcile

logger = logging.getLogger("registry.api")

PROVIDER = "github"


def _redirect_uri() -> str:
    settings = get_settings()
    return f"{settings.API_BASE_URL}/authorize"


def _invalid_state() -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid state")


def purge_stale_states(*, session: Session, now: datetime) -> int:
    res = session.execute(
        delete(OAuthState).where(
            OAuthState.provider == PROVIDER,
            or_(OAuthState.expires_at <= now, OAuthState.used_at.is_not(None)),
        )
    )
    return res.rowcount or 0


def begin_authorization(*, session: Session) -> tuple[str, str]:
    settings = get_settings()
    if not settings.GITHUB_CLIENT_ID or not settings.GITHUB_CLIENT_SECRET:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="GitHub OAuth is not configured",
        )

    now = datetime.now(UTC)
    # Sweeping on issue keeps the table bounded without a background job.
    purge_stale_states(session=session, now=now)

    state = new_random_token()
    session.add(
        OAuthState(
            provider=PROVIDER,
            state=state,
            expires_at=now + timedelta(seconds=settings.OAUTH_STATE_TTL_SECONDS),
        )
    )
    session.flush()

    url = build_authorization_url(
        client_id=settings.GITHUB_CLIENT_ID,
        redirect_uri=_redirect_uri(),
        scopes=settings.github_scopes,
        state=state,
    )
    return url, state


def consume_oauth_state(*, session: Session, state: str | None) -> None:
    """Mark a pending state as used, or reject it.

    The conditional UPDATE is the single-use check: of two callbacks racing on
    the same state only one sees a matched row. Callers commit this before
    talking to the provider so the state is spent whatever happens next.
    """
    if not state or not state.strip():
        raise _invalid_state()

    now = datetime.now(UTC)
    res = session.execute(
        update(OAuthState)
        .where(
            OAuthState.state == state,
            OAuthState.provider == PROVIDER,
            OAuthState.used_at.is_(None),
            OAuthState.expires_at > now,
        )
        .values(used_at=now)
    )
    if res.rowcount != 1:
        logger.info("oauth.state.rejected")
        raise _invalid_state()


def complete_authorization(
    *,
    session: Session,
    http_client: httpx.Client,
    code: str,
) -> User:
    settings = get_settings()
    access_token = exchange_code_for_token(
        http_client,
        code=code,
        client_id=settings.GITHUB_CLIENT_ID,
        client_secret=settings.GITHUB_CLIENT_SECRET,
        redirect_uri=_redirect_uri(),
    )
    profile = fetch_profile(http_client, access_token=access_token)

    user = reconcile(
        session=session,
        external_id=profile.external_id,
        login=profile.login,
        email=profile.email,
        name=profile.name,
        avatar_url=profile.avatar_url,
        access_token=access_token,
    )
    logger.info("oauth.login user_id=%s external_id=%s", user.id, user.external_id)
    return user
