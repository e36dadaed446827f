from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from registry_api.core.config import get_settings
from registry_api.core.deps import require_csrf_header, require_session, require_user
from registry_api.db.session import get_session
from registry_api.models.auth import AuthSession
from registry_api.models.identity import User
from registry_api.schemas.auth import UserOut
from registry_api.schemas.me import (
    ApiTokenCreatedOut,
    ApiTokenCreateRequest,
    ApiTokenCreateResponse,
    ApiTokenListResponse,
    ApiTokenOut,
    MeResponse,
)
from registry_api.schemas.packages import FeedResponse, FeedVersionOut
from registry_api.services.api_tokens import issue, list_tokens, revoke
from registry_api.services.feed import get_feed

router = APIRouter(prefix="/me", tags=["me"], dependencies=[Depends(require_csrf_header)])


@router.get("", response_model=MeResponse)
def me(auth: tuple[AuthSession, User] = Depends(require_session)) -> MeResponse:
    _auth_session, user = auth
    return MeResponse(user=UserOut.from_user(user))


@router.get("/updates", response_model=FeedResponse)
def me_updates(
    page: int = Query(default=1),
    per_page: int | None = Query(default=None),
    user: User = Depends(require_user),
    session: Session = Depends(get_session),
) -> FeedResponse:
    if per_page is None:
        per_page = get_settings().FEED_DEFAULT_PER_PAGE
    feed = get_feed(session=session, user_id=user.id, page=page, per_page=per_page)
    return FeedResponse(
        versions=[
            FeedVersionOut(
                id=item.version.id,
                package_id=item.version.package_id,
                package=item.package_name,
                num=item.version.num,
                download_count=item.version.download_count,
                published_at=item.version.published_at,
            )
            for item in feed.versions
        ],
        more=feed.more,
    )


@router.get("/tokens", response_model=ApiTokenListResponse)
def tokens_list(
    auth: tuple[AuthSession, User] = Depends(require_session),
    session: Session = Depends(get_session),
) -> ApiTokenListResponse:
    _auth_session, user = auth
    tokens = list_tokens(session=session, user_id=user.id)
    return ApiTokenListResponse(api_tokens=[ApiTokenOut.model_validate(t) for t in tokens])


@router.post("/tokens", response_model=ApiTokenCreateResponse, status_code=status.HTTP_201_CREATED)
def tokens_create(
    payload: ApiTokenCreateRequest,
    auth: tuple[AuthSession, User] = Depends(require_session),
    session: Session = Depends(get_session),
) -> ApiTokenCreateResponse:
    _auth_session, user = auth
    token, raw = issue(session=session, user_id=user.id, name=payload.name)
    session.commit()
    session.refresh(token)
    return ApiTokenCreateResponse(
        api_token=ApiTokenCreatedOut(
            id=token.id,
            name=token.name,
            created_at=token.created_at,
            last_used_at=token.last_used_at,
            token=raw,
        )
    )


@router.delete("/tokens/{token_id}")
def tokens_revoke(
    token_id: UUID,
    auth: tuple[AuthSession, User] = Depends(require_session),
    session: Session = Depends(get_session),
) -> dict[str, str]:
    _auth_session, user = auth
    revoke(session=session, token_id=token_id, requesting_user_id=user.id)
    session.commit()
    return {"status": "ok"}
