"""Read side of the package repository.

Publishing, ownership changes and download counting live in other services;
everything here is a plain query over their tables.
"""

from __future__ import annotations

from collections.abc import Collection
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from registry_api.models.packages import Package, PackageOwner, Version


def find_package_by_name(*, session: Session, name: str) -> Package:
    package = (
        session.execute(select(Package).where(Package.name == name)).scalars().first()
    )
    if package is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Package not found")
    return package


def find_packages_by_owner(*, session: Session, user_id: UUID) -> list[Package]:
    return (
        session.execute(
            select(Package)
            .join(PackageOwner, PackageOwner.package_id == Package.id)
            .where(PackageOwner.user_id == user_id)
            .order_by(Package.name.asc())
        )
        .scalars()
        .all()
    )


def find_versions_for_packages(
    *,
    session: Session,
    package_ids: Collection[UUID],
    offset: int,
    limit: int,
) -> list[tuple[Version, str]]:
    """Versions of `package_ids`, newest first, with their package names.

    `id` breaks ties between versions published at the same instant so that
    offsets are stable from one page to the next.
    """
    if not package_ids:
        return []

    rows = session.execute(
        select(Version, Package.name)
        .join(Package, Package.id == Version.package_id)
        .where(Version.package_id.in_(list(package_ids)))
        .order_by(Version.published_at.desc(), Version.id.desc())
        .offset(offset)
        .limit(limit)
    ).all()
    return [(version, name) for version, name in rows]
