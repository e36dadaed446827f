from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from registry_api.models.auth import ApiToken
from registry_api.models.identity import User
from registry_api.services.api_tokens import issue, validate
from registry_api.services.users import (
    external_access_token_for,
    find_by_api_token,
    find_by_id,
    find_by_login,
    reconcile,
)


def _external_id() -> int:
    return uuid.uuid4().int % 10**12


def _reconcile(session: Session, external_id: int, login: str, access_token: str) -> User:
    user = reconcile(
        session=session,
        external_id=external_id,
        login=login,
        email=None,
        name=None,
        avatar_url=None,
        access_token=access_token,
    )
    session.commit()
    return user


def test_reconcile_keeps_id_and_applies_latest_profile(db_session: Session) -> None:
    external_id = _external_id()

    user = _reconcile(db_session, external_id, "foo", "bar")
    user_id = user.id
    assert find_by_id(session=db_session, user_id=user_id).login == "foo"

    again = _reconcile(db_session, external_id, "foo", "bar")
    assert again.id == user_id

    refreshed = _reconcile(db_session, external_id, "foo", "baz")
    assert refreshed.id == user_id
    assert external_access_token_for(refreshed) == "baz"

    renamed = _reconcile(db_session, external_id, "bar", "baz")
    assert renamed.id == user_id
    assert renamed.login == "bar"

    count = db_session.execute(
        select(func.count()).select_from(User).where(User.external_id == external_id)
    ).scalar_one()
    assert count == 1


def test_reconcile_updates_optional_profile_fields(db_session: Session) -> None:
    external_id = _external_id()
    reconcile(
        session=db_session,
        external_id=external_id,
        login="profile-user",
        email="old@example.com",
        name="Old Name",
        avatar_url="https://avatars.example/old.png",
        access_token="t1",
    )
    db_session.commit()

    user = reconcile(
        session=db_session,
        external_id=external_id,
        login="profile-user",
        email="new@example.com",
        name="New Name",
        avatar_url=None,
        access_token="t2",
    )
    db_session.commit()

    db_session.expire_all()
    stored = db_session.get(User, user.id)
    assert stored is not None
    assert stored.email == "new@example.com"
    assert stored.display_name == "New Name"
    assert stored.avatar_url is None


def test_access_token_is_encrypted_at_rest(db_session: Session) -> None:
    user = _reconcile(db_session, _external_id(), "secretive", "plain-access-token")
    assert b"plain-access-token" not in user.encrypted_access_token
    assert external_access_token_for(user) == "plain-access-token"


def test_updating_existing_user_doesnt_change_api_token(db_session: Session) -> None:
    external_id = _external_id()
    original = _reconcile(db_session, external_id, "foo", "foo_token")
    original_id = original.id

    token, raw = issue(session=db_session, user_id=original_id, name="foo")
    db_session.commit()
    token_id = token.id
    token_hash = token.token_hash

    _reconcile(db_session, external_id, "bar", "bar_token")

    user = find_by_api_token(session=db_session, token=raw)
    db_session.commit()
    assert user.id == original_id
    assert user.login == "bar"
    assert external_access_token_for(user) == "bar_token"

    db_session.expire_all()
    stored = db_session.get(ApiToken, token_id)
    assert stored is not None
    assert stored.token_hash == token_hash
    assert validate(session=db_session, token=raw) == original_id


def test_find_by_api_token_marks_token_used(db_session: Session) -> None:
    user = _reconcile(db_session, _external_id(), "token-user", "x")
    token, raw = issue(session=db_session, user_id=user.id, name="ci")
    db_session.commit()
    assert token.last_used_at is None

    find_by_api_token(session=db_session, token=raw)
    db_session.commit()

    db_session.expire_all()
    stored = db_session.get(ApiToken, token.id)
    assert stored is not None
    assert stored.last_used_at is not None


def test_unknown_lookups_are_not_found(db_session: Session) -> None:
    with pytest.raises(HTTPException) as exc:
        find_by_api_token(session=db_session, token="not-a-real-token")
    assert exc.value.status_code == 404

    with pytest.raises(HTTPException) as exc:
        find_by_id(session=db_session, user_id=uuid.uuid4())
    assert exc.value.status_code == 404

    with pytest.raises(HTTPException) as exc:
        find_by_login(session=db_session, login=f"missing-{uuid.uuid4().hex}")
    assert exc.value.status_code == 404


def test_find_by_login_prefers_most_recent_match(db_session: Session) -> None:
    login = f"renamed-{uuid.uuid4().hex[:8]}"
    older = _reconcile(db_session, _external_id(), login, "a")
    newer = _reconcile(db_session, _external_id(), login, "b")

    older.updated_at = datetime.now(UTC) - timedelta(days=2)
    newer.updated_at = datetime.now(UTC) - timedelta(days=1)
    db_session.commit()

    assert find_by_login(session=db_session, login=login).id == newer.id


def test_issue_requires_a_name(db_session: Session) -> None:
    user = _reconcile(db_session, _external_id(), "nameless", "x")
    with pytest.raises(HTTPException) as exc:
        issue(session=db_session, user_id=user.id, name="   ")
    assert exc.value.status_code == 422
