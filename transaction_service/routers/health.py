"""Health check endpoint."""
from __future__ import annotations

import logging

from fastapi import APIRouter
from sqlalchemy import text

from transaction_service.config import AppInfo, get_settings
from transaction_service.db import get_engine

router = APIRouter(prefix="/health", tags=["health"])
logger = logging.getLogger(__name__)


def _db_status() -> str:
    """Return 'ok' if the DB is reachable, 'error' otherwise."""

    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return "ok"
    except Exception:  # noqa: BLE001
        logger.exception("DB health check failed")
        return "error"


@router.get("", summary="Health check")
def healthcheck() -> dict[str, object]:
    """Report database reachability and the balance-handling configuration."""

    settings = get_settings()
    info = AppInfo()
    db_status = _db_status()
    db_ok = db_status == "ok"
    return {
        "status": "ok" if db_ok else "degraded",
        "service": info.name,
        "version": info.version,
        "env": settings.app_env,
        "db_ok": db_ok,
        "db_status": db_status,
        "account_row_locking": settings.ACCOUNT_ROW_LOCKING,
        "project_pending_on_ledger_balance": settings.PROJECT_PENDING_ON_LEDGER_BALANCE,
    }
