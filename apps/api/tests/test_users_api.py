from __future__ import annotations

import uuid
from uuid import UUID

from fastapi.testclient import TestClient
from sqlalchemy import update
from sqlalchemy.orm import Session

from registry_api.main import create_app
from registry_api.models.identity import User
from registry_api.models.packages import Package, PackageOwner
from registry_api.services.users import reconcile


def _new_user(db_session: Session, *, login: str, email: str | None = None) -> User:
    user = reconcile(
        session=db_session,
        external_id=uuid.uuid4().int % 10**12,
        login=login,
        email=email,
        name=None,
        avatar_url=None,
        access_token="bar",
    )
    db_session.commit()
    return user


def _new_package(db_session: Session, *, owner_id: UUID, downloads: int) -> Package:
    package = Package(name=f"krate_{uuid.uuid4().hex[:10]}", download_count=downloads)
    db_session.add(package)
    db_session.flush()
    db_session.add(PackageOwner(package_id=package.id, user_id=owner_id))
    db_session.commit()
    return package


def test_show_user_by_login(db_session: Session) -> None:
    foo_login = f"foo-{uuid.uuid4().hex[:6]}"
    bar_login = f"bar-{uuid.uuid4().hex[:6]}"
    _new_user(db_session, login=foo_login, email="foo@bar.com")
    _new_user(db_session, login=bar_login, email="bar@baz.com")

    client = TestClient(create_app())

    res = client.get(f"/users/{foo_login}")
    assert res.status_code == 200
    user = res.json()["user"]
    assert user["email"] == "foo@bar.com"
    assert user["login"] == foo_login

    user = client.get(f"/users/{bar_login}").json()["user"]
    assert user["email"] == "bar@baz.com"
    assert user["login"] == bar_login
    assert user["url"] == f"https://github.com/{bar_login}"

    assert client.get("/users/definitely-not-registered").status_code == 404


def test_user_total_downloads(db_session: Session) -> None:
    owner = _new_user(db_session, login="download-owner")
    _new_package(db_session, owner_id=owner.id, downloads=10)
    _new_package(db_session, owner_id=owner.id, downloads=20)

    another = _new_user(db_session, login="download-bystander")
    _new_package(db_session, owner_id=another.id, downloads=2)

    client = TestClient(create_app())
    res = client.get(f"/users/{owner.id}/stats")
    assert res.status_code == 200
    assert res.json() == {"total_downloads": 30}

    assert client.get(f"/users/{another.id}/stats").json() == {"total_downloads": 2}


def test_total_downloads_reflects_counter_changes(db_session: Session) -> None:
    owner = _new_user(db_session, login="counter-owner")
    package = _new_package(db_session, owner_id=owner.id, downloads=5)

    client = TestClient(create_app())
    assert client.get(f"/users/{owner.id}/stats").json() == {"total_downloads": 5}

    db_session.execute(
        update(Package)
        .where(Package.id == package.id)
        .values(download_count=Package.download_count + 7)
    )
    db_session.commit()
    assert client.get(f"/users/{owner.id}/stats").json() == {"total_downloads": 12}


def test_total_downloads_without_packages_is_zero(db_session: Session) -> None:
    user = _new_user(db_session, login="no-packages")
    client = TestClient(create_app())
    assert client.get(f"/users/{user.id}/stats").json() == {"total_downloads": 0}
    assert client.get(f"/users/{uuid.uuid4()}/stats").status_code == 404


def test_packages_by_user_id(db_session: Session) -> None:
    owner = _new_user(db_session, login="lister")
    package = _new_package(db_session, owner_id=owner.id, downloads=1)
    _new_package(db_session, owner_id=_new_user(db_session, login="not-lister").id, downloads=1)

    client = TestClient(create_app())
    res = client.get(f"/packages?user_id={owner.id}")
    assert res.status_code == 200
    packages = res.json()["packages"]
    assert [p["name"] for p in packages] == [package.name]
    assert packages[0]["download_count"] == 1
