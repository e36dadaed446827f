from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from registry_api.schemas.auth import UserOut


class MeResponse(BaseModel):
    user: UserOut


class ApiTokenOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    created_at: datetime
    last_used_at: datetime | None


class ApiTokenCreatedOut(ApiTokenOut):
    token: str


class ApiTokenCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class ApiTokenListResponse(BaseModel):
    api_tokens: list[ApiTokenOut]


class ApiTokenCreateResponse(BaseModel):
    api_token: ApiTokenCreatedOut
