from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from registry_api.db.session import get_session
from registry_api.schemas.auth import UserOut
from registry_api.schemas.users import UserShowResponse, UserStatsResponse
from registry_api.services.stats import total_downloads
from registry_api.services.users import find_by_login

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{login}", response_model=UserShowResponse)
def users_show(login: str, session: Session = Depends(get_session)) -> UserShowResponse:
    user = find_by_login(session=session, login=login)
    return UserShowResponse(user=UserOut.from_user(user))


@router.get("/{user_id}/stats", response_model=UserStatsResponse)
def users_stats(user_id: UUID, session: Session = Depends(get_session)) -> UserStatsResponse:
    return UserStatsResponse(total_downloads=total_downloads(session=session, user_id=user_id))
