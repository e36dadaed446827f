from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel

from registry_api.models.identity import User

GITHUB_PROFILE_URL = "https://github.com/{login}"


class AuthorizeUrlResponse(BaseModel):
    url: str
    state: str


class UserOut(BaseModel):
    id: UUID
    login: str
    email: str | None
    name: str | None
    avatar: str | None
    url: str

    @classmethod
    def from_user(cls, user: User) -> UserOut:
        return cls(
            id=user.id,
            login=user.login,
            email=user.email,
            name=user.display_name,
            avatar=user.avatar_url,
            url=GITHUB_PROFILE_URL.format(login=user.login),
        )


class AuthorizeResponse(BaseModel):
    user: UserOut
    csrf_token: str
