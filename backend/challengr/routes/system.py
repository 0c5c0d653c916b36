from __future__ import annotations
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from challengr.config import settings
from challengr.db import get_session

router = APIRouter(tags=["system"])
log = structlog.get_logger()

def _request_id(request: Request) -> str | None:
    return request.headers.get("x-request-id") or getattr(request.state, "request_id", None)

@router.get("/health")
async def health(request: Request):
    # liveness only; no collaborator is touched
    return {
        "status": "ok",
        "env": settings.environment,
        "time": datetime.now(timezone.utc).isoformat(),
        "request_id": _request_id(request),
    }

@router.get("/health/ready")
async def ready(request: Request, session: AsyncSession = Depends(get_session)):
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        log.warning("readiness.db_unavailable", error=str(e))
        return JSONResponse(status_code=503, content={"status": "unavailable", "database": False, "request_id": _request_id(request)})
    return {"status": "ok", "database": True, "request_id": _request_id(request)}

@router.get("/version")
async def version():
    return {
        "name": settings.app_name,
        "display_name": settings.app_display_name,
        "version": settings.app_version,
        "git_sha": settings.git_sha,
    }
