"""FastAPI application factory for the Pi callback receiver."""
from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from picallback import db
from picallback.config import AppInfo, Settings, get_settings
from picallback.core.logging import get_logger, setup_logging
from picallback.middleware.security import install_security_middleware
from picallback.routers import get_api_router
from picallback.services.pipeline import CallbackContext, CallbackPipeline, build_context
from picallback.utils.errors import error_response, internal_error_response

logger = get_logger(__name__)


def _assert_callback_secret(settings: Settings) -> None:
    """Shout when callbacks would be accepted unsigned outside development."""

    if settings.pi_callback_secret:
        return
    if settings.is_dev:
        logger.warning(
            "PI_CALLBACK_SECRET not set; callbacks are accepted WITHOUT signature verification.",
            extra={"env": settings.app_env},
        )
    else:
        logger.error(
            "PI_CALLBACK_SECRET not set in a non-dev environment; callbacks are NOT authenticated.",
            extra={"env": settings.app_env},
        )


def _configure_observability(fastapi_app: FastAPI, settings: Settings) -> None:
    if settings.PROMETHEUS_ENABLED:
        from starlette_exporter import PrometheusMiddleware, handle_metrics

        fastapi_app.add_middleware(PrometheusMiddleware, app_name="picallback")
        fastapi_app.add_route("/metrics", handle_metrics)

    if settings.SENTRY_DSN:
        import sentry_sdk

        sentry_sdk.init(dsn=settings.SENTRY_DSN, traces_sample_rate=0.2)


def _install_frontend(fastapi_app: FastAPI, settings: Settings) -> None:
    static_dir = Path(settings.STATIC_DIR)

    @fastapi_app.get("/", include_in_schema=False)
    async def index() -> Any:
        index_file = static_dir / "index.html"
        if not index_file.is_file():
            return JSONResponse(status_code=404, content=error_response("Not found"))
        return FileResponse(index_file)

    if static_dir.is_dir():
        fastapi_app.mount("/static", StaticFiles(directory=static_dir), name="static")
    else:
        logger.info("Static directory missing; frontend assets not served", extra={"dir": str(static_dir)})


def _install_exception_handlers(fastapi_app: FastAPI) -> None:
    @fastapi_app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @fastapi_app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception", exc_info=exc)
        return JSONResponse(status_code=500, content=internal_error_response())


def create_app(settings: Settings | None = None, context: CallbackContext | None = None) -> FastAPI:
    """Build the ASGI app.

    ``context`` lets callers inject the secret/store pair; otherwise it is
    built from ``settings`` when the app starts.
    """

    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(fastapi_app: FastAPI):
        setup_logging(settings.LOG_LEVEL)
        logger.info("Application startup", extra={"env": settings.app_env})
        _assert_callback_secret(settings)
        built_here = getattr(fastapi_app.state, "pipeline", None) is None
        if built_here:
            fastapi_app.state.pipeline = CallbackPipeline(build_context(settings))
            if settings.ALLOW_DB_CREATE_ALL and settings.is_dev:
                logger.warning("Running create_all() because APP_ENV=%s", settings.app_env)
                db.create_all()
        try:
            yield
        finally:
            if built_here:
                fastapi_app.state.pipeline = None
            db.close_engine()
            logger.info("Application shutdown", extra={"env": settings.app_env})

    app_info = AppInfo()
    fastapi_app = FastAPI(title=app_info.name, version=app_info.version, lifespan=lifespan)
    fastapi_app.state.settings = settings
    if context is not None:
        fastapi_app.state.pipeline = CallbackPipeline(context)

    install_security_middleware(fastapi_app, settings)
    _configure_observability(fastapi_app, settings)
    fastapi_app.include_router(get_api_router())
    _install_frontend(fastapi_app, settings)
    _install_exception_handlers(fastapi_app)
    return fastapi_app


app = create_app()

__all__ = ["app", "create_app"]
