from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class PackageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None
    download_count: int
    created_at: datetime
    updated_at: datetime


class PackageListResponse(BaseModel):
    packages: list[PackageOut]


class FollowResponse(BaseModel):
    ok: bool


class FollowingResponse(BaseModel):
    following: bool


class FeedVersionOut(BaseModel):
    id: UUID
    package_id: UUID
    package: str
    num: str
    download_count: int
    published_at: datetime


class FeedResponse(BaseModel):
    versions: list[FeedVersionOut]
    more: bool
