from __future__ import annotations

import base64
import os
import uuid
from collections.abc import Generator
from contextlib import suppress
from pathlib import Path

import pytest
from alembic.config import Config
from sqlalchemy import create_engine, text
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.orm import Session

from alembic import command


def _make_admin_url(url: URL) -> URL:
    # "postgres" is present in the official image and works for admin tasks.
    return url.set(database="postgres")


def _make_test_db_name() -> str:
    return f"registry_test_{uuid.uuid4().hex}"


def _configure_test_env(database_url: str) -> None:
    os.environ["DATABASE_URL"] = database_url
    os.environ.setdefault("APP_ENV", "test")
    os.environ.setdefault("COOKIE_SECURE", "false")
    os.environ.setdefault("SECRET_KEY", "test-secret-key")
    os.environ.setdefault(
        "ENCRYPTION_KEY_BASE64", base64.b64encode(b"k" * 32).decode("ascii")
    )
    os.environ.setdefault("GITHUB_CLIENT_ID", "test-github-client-id")
    os.environ.setdefault("GITHUB_CLIENT_SECRET", "test-github-client-secret")

    # Clear cached settings/engines so imports inside the test session use the test DB.
    from registry_api.core.config import get_settings
    from registry_api.db.session import get_engine, get_sessionmaker

    get_settings.cache_clear()
    get_engine.cache_clear()
    get_sessionmaker.cache_clear()


def _migrate() -> None:
    alembic_ini = Path(__file__).resolve().parents[1] / "alembic.ini"
    cfg = Config(str(alembic_ini))
    command.upgrade(cfg, "head")


def _dispose() -> None:
    from registry_api.core.config import get_settings
    from registry_api.db.session import get_engine, get_sessionmaker

    # Ensure connection pools to the test DB are closed before dropping.
    with suppress(Exception):
        get_engine().dispose()
    get_engine.cache_clear()
    get_sessionmaker.cache_clear()
    get_settings.cache_clear()


@pytest.fixture(scope="session", autouse=True)
def _test_database(tmp_path_factory: pytest.TempPathFactory) -> Generator[None, None, None]:
    base_url = os.environ.get("DATABASE_URL", "")
    url = make_url(base_url) if base_url else None

    if url is None or url.get_backend_name() != "postgresql":
        # No Postgres configured: run against a throwaway SQLite file.
        db_path = tmp_path_factory.mktemp("db") / "registry_test.sqlite3"
        _configure_test_env(f"sqlite:///{db_path}")
        _migrate()
        yield
        _dispose()
        return

    if url.host not in {"localhost", "127.0.0.1", None}:
        raise RuntimeError(
            "Refusing to run tests against a non-local DATABASE_URL host. "
            "Set DATABASE_URL to a local/dev Postgres instance."
        )

    db_name = _make_test_db_name()
    admin_engine = create_engine(
        _make_admin_url(url), isolation_level="AUTOCOMMIT", pool_pre_ping=True
    )

    with admin_engine.connect() as conn:
        conn.execute(text(f'CREATE DATABASE "{db_name}"'))

    _configure_test_env(url.set(database=db_name).render_as_string(hide_password=False))
    _migrate()

    yield

    _dispose()

    with admin_engine.connect() as conn:
        conn.execute(
            text(
                """
                SELECT pg_terminate_backend(pid)
                FROM pg_stat_activity
                WHERE datname = :db_name AND pid <> pg_backend_pid();
                """
            ),
            {"db_name": db_name},
        )
        conn.execute(text(f'DROP DATABASE IF EXISTS "{db_name}"'))

    admin_engine.dispose()


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    from registry_api.db.session import get_sessionmaker

    SessionLocal = get_sessionmaker()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
