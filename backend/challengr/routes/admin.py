from __future__ import annotations
from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from challengr.db import get_session
from challengr.auth_deps import require_moderator, require_admin
from challengr.schemas.admin import AdminStats, ConfigEntry, ConfigUpdate
from challengr.services.admin_stats import admin_stats
from challengr.services.config_store import list_config, set_value

router = APIRouter(prefix="/admin", tags=["admin"])

@router.get("/stats", response_model=AdminStats)
async def stats(session: AsyncSession = Depends(get_session), user=Depends(require_moderator)):
    return await admin_stats(session)

@router.get("/config", response_model=list[ConfigEntry])
async def get_config(session: AsyncSession = Depends(get_session), user=Depends(require_admin)):
    return await list_config(session)

@router.put("/config/{key}", response_model=ConfigEntry)
async def update_config(
    payload: ConfigUpdate,
    key: str = Path(..., pattern=r"^[a-z][a-z0-9_]{0,63}$"),
    session: AsyncSession = Depends(get_session),
    user=Depends(require_admin),
):
    row = await set_value(session, key, payload.value, payload.description)
    return ConfigEntry(key=row.key, value=row.value, description=row.description, is_default=False)
