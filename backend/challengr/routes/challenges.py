from __future__ import annotations
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from uuid import UUID

from challengr.db import get_session, utcnow
from challengr.auth_deps import get_current_user
from challengr.errors import NotFound
from challengr.models.challenge import Challenge
from challengr.schemas.challenge import ChallengeCreate, ChallengePublic
from challengr.services.submissions import challenge_points

router = APIRouter(prefix="/challenges", tags=["challenges"])

async def hydrate_public(session: AsyncSession, ch: Challenge, user_id) -> ChallengePublic:
    return ChallengePublic(
        id=ch.id,
        created_by=ch.created_by,
        title=ch.title,
        description=ch.description,
        points_reward=await challenge_points(session, ch),
        is_active=ch.is_active,
        created_at=ch.created_at,
        is_owner=(ch.created_by == user_id),
    )

@router.post("", response_model=ChallengePublic, status_code=201)
async def create_challenge(payload: ChallengeCreate, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    ch = Challenge(
        created_by=user.user_id,
        title=payload.title,
        description=payload.description,
        points_reward=payload.points_reward,
        is_active=True,
        created_at=utcnow(),
    )
    session.add(ch)
    await session.commit()
    return await hydrate_public(session, ch, user.user_id)

@router.get("", response_model=list[ChallengePublic])
async def list_challenges(
    mine: int = Query(default=0, ge=0, le=1),
    limit: int = Query(default=50, ge=1, le=200),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    q = select(Challenge).where(Challenge.is_active.is_(True))
    if mine == 1:
        q = q.where(Challenge.created_by == user.user_id)
    rows = (await session.execute(q.order_by(Challenge.created_at.desc()).limit(limit))).scalars().all()
    return [await hydrate_public(session, ch, user.user_id) for ch in rows]

@router.get("/{challenge_id}", response_model=ChallengePublic)
async def get_challenge(challenge_id: UUID, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    ch = await session.get(Challenge, challenge_id)
    if not ch:
        raise NotFound("Challenge not found")
    return await hydrate_public(session, ch, user.user_id)
