from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from registry_api.models.packages import Package, PackageOwner
from registry_api.services.users import find_by_id


def total_downloads(*, session: Session, user_id: UUID) -> int:
    # Summed at read time; there is no maintained running total to drift.
    find_by_id(session=session, user_id=user_id)
    total = session.execute(
        select(func.coalesce(func.sum(Package.download_count), 0))
        .select_from(Package)
        .join(PackageOwner, PackageOwner.package_id == Package.id)
        .where(PackageOwner.user_id == user_id)
    ).scalar_one()
    return int(total)
