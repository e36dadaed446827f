from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from registry_api.db.upsert import dialect_insert
from registry_api.models.packages import Follow


def follow(*, session: Session, user_id: UUID, package_id: UUID) -> None:
    # Primary key (user_id, package_id); a concurrent or repeated follow is a no-op.
    stmt = (
        dialect_insert(session, Follow)
        .values(user_id=user_id, package_id=package_id)
        .on_conflict_do_nothing(index_elements=[Follow.user_id, Follow.package_id])
    )
    session.execute(stmt)


def unfollow(*, session: Session, user_id: UUID, package_id: UUID) -> None:
    session.execute(
        delete(Follow).where(Follow.user_id == user_id, Follow.package_id == package_id)
    )


def is_following(*, session: Session, user_id: UUID, package_id: UUID) -> bool:
    row = session.execute(
        select(Follow.package_id).where(
            Follow.user_id == user_id,
            Follow.package_id == package_id,
        )
    ).first()
    return row is not None


def followed_package_ids(*, session: Session, user_id: UUID) -> set[UUID]:
    return set(
        session.execute(select(Follow.package_id).where(Follow.user_id == user_id)).scalars()
    )
