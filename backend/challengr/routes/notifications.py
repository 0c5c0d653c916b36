from __future__ import annotations
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from uuid import UUID

from challengr.db import get_session, utcnow
from challengr.auth_deps import get_current_user
from challengr.errors import NotFound
from challengr.models.notification import Notification
from challengr.schemas.challenge import NotificationPublic

router = APIRouter(prefix="/notifications", tags=["notifications"])

def _pub(n: Notification) -> NotificationPublic:
    return NotificationPublic(id=n.id, kind=n.kind, payload=n.payload or {}, created_at=n.created_at, read_at=n.read_at)

@router.get("", response_model=list[NotificationPublic])
async def inbox(
    unread: int = Query(default=0, ge=0, le=1),
    limit: int = Query(default=50, ge=1, le=200),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    q = select(Notification).where(Notification.user_id == user.user_id)
    if unread == 1:
        q = q.where(Notification.read_at.is_(None))
    rows = (await session.execute(q.order_by(Notification.created_at.desc()).limit(limit))).scalars().all()
    return [_pub(n) for n in rows]

@router.post("/{notification_id}/read", response_model=NotificationPublic)
async def mark_read(notification_id: UUID, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    await session.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user.user_id, Notification.read_at.is_(None))
        .values(read_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    n = await session.get(Notification, notification_id, populate_existing=True)
    if not n or n.user_id != user.user_id:
        raise NotFound("Notification not found")
    return _pub(n)
