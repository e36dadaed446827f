from __future__ import annotations

import httpx
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from registry_api.core.deps import require_csrf_header, require_session
from registry_api.core.http import get_http_client
from registry_api.core.security import (
    clear_csrf_cookie,
    clear_session_cookie,
    new_random_token,
    set_csrf_cookie,
    set_session_cookie,
)
from registry_api.db.session import get_session
from registry_api.models.auth import AuthSession
from registry_api.models.identity import User
from registry_api.schemas.auth import AuthorizeResponse, AuthorizeUrlResponse, UserOut
from registry_api.services.auth.oauth import (
    begin_authorization,
    complete_authorization,
    consume_oauth_state,
)
from registry_api.services.auth.sessions import create_session, revoke_session

router = APIRouter(tags=["auth"], dependencies=[Depends(require_csrf_header)])


@router.get("/authorize_url", response_model=AuthorizeUrlResponse)
def authorize_url(
    response: Response, session: Session = Depends(get_session)
) -> AuthorizeUrlResponse:
    url, state = begin_authorization(session=session)
    session.commit()
    response.headers["Cache-Control"] = "no-store"
    return AuthorizeUrlResponse(url=url, state=state)


@router.get("/authorize", response_model=AuthorizeResponse)
def authorize(
    response: Response,
    state: str | None = None,
    code: str | None = None,
    error: str | None = None,
    session: Session = Depends(get_session),
    http_client: httpx.Client = Depends(get_http_client),
) -> AuthorizeResponse:
    consume_oauth_state(session=session, state=state)
    # Spend the state before contacting GitHub so a failed exchange can't be retried with it.
    session.commit()

    if error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"OAuth error: {error}")
    if not code:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing OAuth code")

    user = complete_authorization(session=session, http_client=http_client, code=code)
    token, _auth_session = create_session(session=session, user=user)
    session.commit()

    # Rotate CSRF on login to ensure we always have a token paired with a session.
    csrf = new_random_token()
    set_session_cookie(response, token)
    set_csrf_cookie(response, csrf)
    response.headers["Cache-Control"] = "no-store"

    return AuthorizeResponse(user=UserOut.from_user(user), csrf_token=csrf)


@router.post("/logout")
def logout(
    response: Response,
    auth: tuple[AuthSession, User] = Depends(require_session),
    session: Session = Depends(get_session),
) -> dict[str, str]:
    auth_session, _user = auth
    revoke_session(session=session, auth_session=auth_session, reason="logout")
    session.commit()

    clear_session_cookie(response)
    clear_csrf_cookie(response)
    response.headers["Cache-Control"] = "no-store"
    return {"status": "ok"}
