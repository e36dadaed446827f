from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode

import httpx
from fastapi import HTTPException, status

GITHUB_OAUTH_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_OAUTH_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_USER_URL = "https://api.github.com/user"


@dataclass(frozen=True)
class GitHubProfile:
    external_id: int
    login: str
    email: str | None
    name: str | None
    avatar_url: str | None


def build_authorization_url(
    *,
    client_id: str,
    redirect_uri: str,
    scopes: list[str],
    state: str,
) -> str:
    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": " ".join(scopes),
        "state": state,
    }
    return f"{GITHUB_OAUTH_AUTHORIZE_URL}?{urlencode(params)}"


def exchange_code_for_token(
    client: httpx.Client,
    *,
    code: str,
    client_id: str,
    client_secret: str,
    redirect_uri: str,
) -> str:
    res = client.post(
        GITHUB_OAUTH_TOKEN_URL,
        data={
            "code": code,
            "client_id": client_id,
            "client_secret": client_secret,
            "redirect_uri": redirect_uri,
        },
        headers={"Accept": "application/json"},
    )

    # GitHub reports a bad/expired code as 200 with an `error` field.
    payload: dict = {}
    if res.status_code < 400:
        try:
            payload = res.json()
        except ValueError:
            payload = {}
    access_token = payload.get("access_token")
    if payload.get("error") or not access_token:
        # Avoid leaking raw upstream payload (might contain details we don't want to log/return).
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="GitHub token exchange failed",
        )
    return str(access_token)


def fetch_profile(client: httpx.Client, *, access_token: str) -> GitHubProfile:
    res = client.get(
        GITHUB_USER_URL,
        headers={
            "Authorization": f"token {access_token}",
            "Accept": "application/vnd.github+json",
        },
    )
    if res.status_code >= 400:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="GitHub profile lookup failed",
        )

    payload = res.json()
    try:
        external_id = int(payload["id"])
        login = str(payload["login"]).strip()
    except (KeyError, TypeError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="GitHub profile returned an invalid account",
        ) from e
    if not login:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="GitHub profile returned an invalid account",
        )

    return GitHubProfile(
        external_id=external_id,
        login=login,
        email=payload.get("email"),
        name=payload.get("name"),
        avatar_url=payload.get("avatar_url"),
    )
