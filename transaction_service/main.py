from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from transaction_service import db
from transaction_service.config import AppInfo, get_settings
from transaction_service.core.logging import get_logger, setup_logging
import transaction_service.models  # noqa: F401  registers the tables
from transaction_service.routers import get_api_router
from transaction_service.utils.errors import TransactionServiceError, error_response

logger = get_logger(__name__)
ALLOWED_CREATE_ENV = {"dev", "local", "test"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    logger.info("Application startup", extra={"env": settings.app_env})
    db.init_engine()
    if settings.ALLOW_DB_CREATE_ALL and settings.app_env.lower() in ALLOWED_CREATE_ENV:
        logger.warning(
            "Running Base.metadata.create_all() because APP_ENV=%s and ALLOW_DB_CREATE_ALL=True",
            settings.app_env,
        )
        db.create_all()
    try:
        yield
    finally:
        db.close_engine()
        logger.info("Application shutdown", extra={"env": settings.app_env})


async def transaction_error_handler(request: Request, exc: TransactionServiceError) -> JSONResponse:
    logger.info(
        "Request failed",
        extra={"path": request.url.path, "error_code": exc.code, "status_code": exc.status_code},
    )
    return JSONResponse(status_code=exc.status_code, content=exc.detail)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict) and "error" in detail:
        content: dict[str, Any] = detail
    else:
        content = error_response("HTTP_ERROR", str(detail))
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception", exc_info=exc)
    payload = error_response("INTERNAL_SERVER_ERROR", "An unexpected error occurred.")
    return JSONResponse(status_code=500, content=payload)


def register_exception_handlers(fastapi_app: FastAPI) -> None:
    """Render the transaction error taxonomy as standard JSON error payloads."""

    fastapi_app.add_exception_handler(TransactionServiceError, transaction_error_handler)
    fastapi_app.add_exception_handler(HTTPException, http_exception_handler)
    fastapi_app.add_exception_handler(Exception, generic_exception_handler)


def create_app() -> FastAPI:
    app_info = AppInfo()
    fastapi_app = FastAPI(title=app_info.name, version=app_info.version, lifespan=lifespan)
    fastapi_app.include_router(get_api_router())
    register_exception_handlers(fastapi_app)
    return fastapi_app


app = create_app()

__all__ = ["app", "create_app", "register_exception_handlers"]
