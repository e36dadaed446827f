from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from registry_api.core.config import get_settings
from registry_api.core.security import bearer_token_from_request
from registry_api.db.session import get_session
from registry_api.models.auth import AuthSession
from registry_api.models.identity import User
from registry_api.services.auth.sessions import find_active_session
from registry_api.services.users import find_by_api_token

SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}

logger = logging.getLogger("registry.api")


def _not_authenticated() -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authenticated")


def require_csrf_header(request: Request) -> None:
    if request.method in SAFE_METHODS:
        return
    settings = get_settings()
    # Token clients (cargo-style CLIs) send no session cookie, so there is nothing to forge.
    if (
        bearer_token_from_request(request) is not None
        and settings.SESSION_COOKIE_NAME not in request.cookies
    ):
        return

    cookie_token = request.cookies.get(settings.CSRF_COOKIE_NAME)
    header_token = request.headers.get(settings.CSRF_HEADER_NAME)

    if not cookie_token or not header_token or cookie_token != header_token:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="CSRF token missing or invalid",
        )


def _session_from_cookie(request: Request, session: Session) -> tuple[AuthSession, User] | None:
    settings = get_settings()
    raw = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not raw:
        return None

    auth_session = find_active_session(session=session, token=raw)
    if auth_session is None:
        return None

    user = session.get(User, auth_session.user_id)
    if user is None:
        return None
    return auth_session, user


def require_session(
    request: Request,
    session: Session = Depends(get_session),
) -> tuple[AuthSession, User]:
    auth = _session_from_cookie(request, session)
    if auth is None:
        raise _not_authenticated()
    return auth


def require_user(
    request: Request,
    session: Session = Depends(get_session),
) -> User:
    """Resolve the caller from an API token if one is sent, else from the session cookie.

    A request carrying an `Authorization` header is authenticated by that token
    alone, matching the CSRF exemption in `require_csrf_header`.
    """
    token = bearer_token_from_request(request)
    if token is None:
        auth = _session_from_cookie(request, session)
        if auth is None:
            raise _not_authenticated()
        return auth[1]

    try:
        user = find_by_api_token(session=session, token=token)
    except HTTPException as e:
        if e.status_code != status.HTTP_404_NOT_FOUND:
            raise
        logger.info("auth.api_token.rejected")
        raise _not_authenticated() from e

    # Persist the last_used_at bump even for read-only requests.
    session.commit()
    return user
