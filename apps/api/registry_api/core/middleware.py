from __future__ import annotations

import json
import logging
import threading
import time
from collections import deque
from contextvars import ContextVar
from dataclasses import dataclass, field

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.responses import Response

from registry_api.core.config import Settings
from registry_api.core.metrics import observe_http_request
from registry_api.core.security import new_random_token

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
logger = logging.getLogger("registry.api")


@dataclass
class RateLimiter:
    max_requests: int
    window_seconds: int = 60
    _lock: threading.Lock = field(default_factory=threading.Lock)
    _buckets: dict[str, deque[float]] = field(default_factory=dict)

    def allow(self, key: str, *, now_ts: float) -> bool:
        with self._lock:
            bucket = self._buckets.setdefault(key, deque())

            cutoff = now_ts - float(self.window_seconds)
            while bucket and bucket[0] <= cutoff:
                bucket.popleft()

            if len(bucket) >= self.max_requests:
                return False

            bucket.append(now_ts)
            return True


def build_request_id(request: Request, *, header_name: str) -> str:
    incoming = (request.headers.get(header_name) or "").strip()
    if incoming:
        return incoming[:128]
    return new_random_token(nbytes=18)


def apply_security_headers(response: Response, *, settings: Settings) -> None:
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "same-origin")
    response.headers.setdefault("Content-Security-Policy", settings.CONTENT_SECURITY_POLICY)


def rate_limit_key(request: Request) -> str:
    forwarded_for = (request.headers.get("x-forwarded-for") or "").strip()
    if forwarded_for:
        ip = forwarded_for.split(",", 1)[0].strip()
    else:
        ip = request.client.host if request.client else "unknown"
    return ip


def rate_limit_response() -> JSONResponse:
    return JSONResponse(status_code=429, content={"detail": "Rate limit exceeded"})


def log_request_completion(
    *,
    request_id: str,
    method: str,
    path: str,
    status_code: int,
    duration_ms: int,
    rate_limited: bool,
) -> None:
    logger.info(
        json.dumps(
            {
                "event": "http.request.completed",
                "request_id": request_id,
                "method": method,
                "path": path,
                "status_code": status_code,
                "duration_ms": duration_ms,
                "rate_limited": rate_limited,
            },
            separators=(",", ":"),
            sort_keys=True,
        )
    )


def now_ts() -> float:
    return time.time()


def _route_template(request: Request) -> str:
    # Label metrics by route template so per-package paths don't explode cardinality.
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def install_request_context(app: FastAPI, *, settings: Settings) -> None:
    rate_limiter = (
        RateLimiter(max_requests=settings.RATE_LIMIT_REQUESTS_PER_MINUTE)
        if settings.RATE_LIMIT_REQUESTS_PER_MINUTE > 0
        else None
    )

    @app.middleware("http")
    async def add_security_headers_and_request_context(request, call_next):  # type: ignore[no-untyped-def]
        request_id = build_request_id(request, header_name=settings.REQUEST_ID_HEADER)
        token = request_id_ctx.set(request_id)
        start_ts = now_ts()
        method = request.method
        response = None
        blocked = False
        status_code = 500

        try:
            if rate_limiter is not None:
                if not rate_limiter.allow(rate_limit_key(request), now_ts=now_ts()):
                    blocked = True
                    response = rate_limit_response()

            if response is None:
                response = await call_next(request)

            status_code = response.status_code
            response.headers[settings.REQUEST_ID_HEADER] = request_id
            apply_security_headers(response, settings=settings)
            return response
        finally:
            duration_ms = int((now_ts() - start_ts) * 1000)
            log_request_completion(
                request_id=request_id,
                method=method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=duration_ms,
                rate_limited=blocked,
            )
            if settings.ENABLE_PROMETHEUS_METRICS:
                observe_http_request(
                    method=method,
                    path=_route_template(request),
                    status_code=status_code,
                    duration_ms=duration_ms,
                    rate_limited=blocked,
                )
            request_id_ctx.reset(token)


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(SQLAlchemyError)
    async def database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        # Store errors are logged here and never echoed to the client.
        logger.exception(
            "database error request_id=%s path=%s", request_id_ctx.get(), request.url.path
        )
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
