from __future__ import annotations

from pydantic import BaseModel

from registry_api.schemas.auth import UserOut


class UserShowResponse(BaseModel):
    user: UserOut


class UserStatsResponse(BaseModel):
    total_downloads: int
