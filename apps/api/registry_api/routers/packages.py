from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from registry_api.core.deps import require_csrf_header, require_user
from registry_api.db.session import get_session
from registry_api.models.identity import User
from registry_api.schemas.packages import (
    FollowingResponse,
    FollowResponse,
    PackageListResponse,
    PackageOut,
)
from registry_api.services.following import follow, is_following, unfollow
from registry_api.services.packages import find_package_by_name, find_packages_by_owner
from registry_api.services.users import find_by_id

router = APIRouter(
    prefix="/packages",
    tags=["packages"],
    dependencies=[Depends(require_csrf_header)],
)


@router.get("", response_model=PackageListResponse)
def packages_by_owner(
    user_id: UUID = Query(...),
    session: Session = Depends(get_session),
) -> PackageListResponse:
    find_by_id(session=session, user_id=user_id)
    packages = find_packages_by_owner(session=session, user_id=user_id)
    return PackageListResponse(packages=[PackageOut.model_validate(p) for p in packages])


@router.put("/{name}/follow", response_model=FollowResponse)
def packages_follow(
    name: str,
    user: User = Depends(require_user),
    session: Session = Depends(get_session),
) -> FollowResponse:
    package = find_package_by_name(session=session, name=name)
    follow(session=session, user_id=user.id, package_id=package.id)
    session.commit()
    return FollowResponse(ok=True)


@router.delete("/{name}/follow", response_model=FollowResponse)
def packages_unfollow(
    name: str,
    user: User = Depends(require_user),
    session: Session = Depends(get_session),
) -> FollowResponse:
    package = find_package_by_name(session=session, name=name)
    unfollow(session=session, user_id=user.id, package_id=package.id)
    session.commit()
    return FollowResponse(ok=True)


@router.get("/{name}/following", response_model=FollowingResponse)
def packages_following(
    name: str,
    user: User = Depends(require_user),
    session: Session = Depends(get_session),
) -> FollowingResponse:
    package = find_package_by_name(session=session, name=name)
    return FollowingResponse(
        following=is_following(session=session, user_id=user.id, package_id=package.id)
    )
