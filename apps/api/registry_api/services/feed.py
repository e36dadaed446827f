from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from registry_api.core.config import get_settings
from registry_api.models.packages import Version
from registry_api.services.following import followed_package_ids
from registry_api.services.packages import find_versions_for_packages


@dataclass(frozen=True)
class FeedItem:
    version: Version
    package_name: str


@dataclass(frozen=True)
class FeedPage:
    versions: list[FeedItem]
    more: bool


def validate_page(*, page: int, per_page: int) -> None:
    if page < 1:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid page")

    settings = get_settings()
    if per_page < 1 or per_page > settings.FEED_MAX_PER_PAGE:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid per_page")


def get_feed(*, session: Session, user_id: UUID, page: int, per_page: int) -> FeedPage:
    """Recent versions of the packages `user_id` follows.

    Fetches `per_page + 1` rows: the extra row only signals that another page
    exists, which saves a COUNT query. Offsets are computed per request, so a
    version published between two page reads shifts the window and can show
    up twice or be skipped.
    """
    validate_page(page=page, per_page=per_page)

    package_ids = followed_package_ids(session=session, user_id=user_id)
    if not package_ids:
        return FeedPage(versions=[], more=False)

    rows = find_versions_for_packages(
        session=session,
        package_ids=package_ids,
        offset=(page - 1) * per_page,
        limit=per_page + 1,
    )

    more = len(rows) > per_page
    items = [FeedItem(version=v, package_name=name) for v, name in rows[:per_page]]
    return FeedPage(versions=items, more=more)
