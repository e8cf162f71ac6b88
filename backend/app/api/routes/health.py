from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.deps import get_store
from app.core.exceptions import StoreUnavailableError
from app.db.bootstrap import missing_schema_items
from app.services.store import ScheduleStore

router = APIRouter()


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/health/live")
def health_live() -> dict:
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


def _schema_report(session_factory) -> tuple[list[str], dict[str, list[str]]]:
    with session_factory() as db:
        return missing_schema_items(db.get_bind())


@router.get("/health/ready")
async def health_ready(store: ScheduleStore = Depends(get_store)) -> JSONResponse:
    store_ok = True
    store_error: str | None = None
    missing_tables: list[str] = []
    missing_columns: dict[str, list[str]] = {}

    try:
        await store.ping()
        session_factory = getattr(store, "session_factory", None)
        if session_factory is not None:
            missing_tables, missing_columns = await asyncio.to_thread(_schema_report, session_factory)
    except StoreUnavailableError as exc:
        store_ok = False
        store_error = exc.message

    schema_ok = not missing_tables and not missing_columns
    offline = store.backend_name != "database"
    ready = store_ok and schema_ok

    payload = {
        "status": "ok" if ready and not offline else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "store": {
            "backend": store.backend_name,
            "offline": offline,
            "ok": store_ok,
            "schema_ok": schema_ok,
            "missing_tables": missing_tables,
            "missing_columns": missing_columns,
            "error": store_error,
        },
    }
    return JSONResponse(status_code=200 if ready else 503, content=payload)
