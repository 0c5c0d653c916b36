from __future__ import annotations
import asyncio
import uuid
from typing import Any
import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from challengr.db import SessionLocal
from challengr.models.notification import Notification

log = structlog.get_logger()

async def store_notification(session: AsyncSession, user_id: str, kind: str, payload: dict[str, Any]) -> Notification:
    n = Notification(user_id=uuid.UUID(str(user_id)), kind=kind, payload=dict(payload or {}))
    session.add(n)
    await session.commit()
    log.info("notification.stored", user_id=str(user_id), kind=kind)
    return n

async def _run(user_id: str, kind: str, payload: dict[str, Any]):
    async with SessionLocal() as session:
        await store_notification(session, user_id, kind, payload)

def deliver_notification(user_id: str, kind: str, payload: dict[str, Any]):
    # RQ entry point (sync); run the async coroutine
    asyncio.run(_run(user_id, kind, payload))
