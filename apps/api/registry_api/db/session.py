from __future__ import annotations

from collections.abc import Generator
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from registry_api.core.config import get_settings


def _make_engine() -> Engine:
    settings = get_settings()
    url = make_url(settings.DATABASE_URL)
    connect_args: dict[str, object] = {}
    if url.get_backend_name() == "sqlite":
        # Request handlers run in a threadpool; connections move between threads.
        connect_args["check_same_thread"] = False
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return _make_engine()


@lru_cache(maxsize=1)
def get_sessionmaker() -> sessionmaker:
    engine = get_engine()
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def get_session() -> Generator[Session, None, None]:
    SessionLocal = get_sessionmaker()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
