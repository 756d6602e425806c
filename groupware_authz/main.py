from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from groupware_authz.authz.config import load_authz_config
from groupware_authz.authz.errors import AccessDeniedError
from groupware_authz.authz.handlers import build_registry
from groupware_authz.db.init_db import init_db
from groupware_authz.logging_config import configure_app_logging
from groupware_authz.routers import health, permissions
from groupware_authz.settings import get_settings

logger = logging.getLogger(__name__)


async def access_denied_handler(request: Request, exc: AccessDeniedError) -> JSONResponse:
    logger.info("access denied path=%s object=%s missing=%s", request.url.path, exc.gid, sorted(exc.missing))
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        settings = get_settings()
        configure_app_logging(settings.log_level)
        logger.info("App startup beginning")

        config_path = settings.resolved_config_path()
        app.state.authz_config = load_authz_config(config_path)
        app.state.authz_registry = build_registry(app.state.authz_config)
        logger.info("Loaded authz config: %s", config_path)
        init_db()
        logger.info("Database initialized (tables ensured + seed if needed)")

        yield

    app = FastAPI(lifespan=lifespan)
    app.add_exception_handler(AccessDeniedError, access_denied_handler)

    app.include_router(health.router)
    app.include_router(permissions.router)

    return app


app = create_app()
