from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from registry_api.core.config import get_settings
from registry_api.db.session import get_session

router = APIRouter(tags=["health"])


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok", "version": get_settings().VERSION}


@router.get("/readyz")
def readyz(session: Session = Depends(get_session)) -> dict[str, str]:
    try:
        session.execute(text("select 1"))
    except SQLAlchemyError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="database not ready",
        ) from e
    return {"status": "ready"}
