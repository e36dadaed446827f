from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from registry_api.core.config import get_settings
from registry_api.core.metrics import metrics_response
from registry_api.core.middleware import install_error_handlers, install_request_context
from registry_api.routers.auth import router as auth_router
from registry_api.routers.health import router as health_router
from registry_api.routers.me import router as me_router
from registry_api.routers.packages import router as packages_router
from registry_api.routers.users import router as users_router


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Package Registry Accounts API", version=settings.VERSION)

    origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_request_context(app, settings=settings)
    install_error_handlers(app)

    if settings.ENABLE_PROMETHEUS_METRICS:
        app.add_api_route(
            settings.PROMETHEUS_METRICS_PATH,
            metrics_response,
            methods=["GET"],
            include_in_schema=False,
        )

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(me_router)
    app.include_router(users_router)
    app.include_router(packages_router)
    return app


app = create_app()
