from __future__ import annotations
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from uuid import UUID

from challengr.db import get_session
from challengr.auth_deps import get_current_user
from challengr.models.post import FeedPost
from challengr.schemas.challenge import FeedPostPublic

router = APIRouter(prefix="/feed", tags=["feed"])

# Chronological only; ranking/trending lives in the social feed service.
@router.get("", response_model=list[FeedPostPublic])
async def recent_posts(
    challenge_id: UUID | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    q = select(FeedPost)
    if challenge_id:
        q = q.where(FeedPost.challenge_id == challenge_id)
    rows = (await session.execute(q.order_by(FeedPost.created_at.desc()).limit(limit))).scalars().all()
    return [
        FeedPostPublic(
            id=p.id, user_id=p.user_id, challenge_id=p.challenge_id, submission_id=p.submission_id,
            content=p.content, image_url=p.image_url, video_url=p.video_url, created_at=p.created_at,
        )
        for p in rows
    ]
