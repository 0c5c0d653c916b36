from __future__ import annotations
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from challengr.db import get_session
from challengr.auth_deps import get_current_user
from challengr.errors import NotFound
from challengr.models.profile import Profile
from challengr.schemas.profile import ProfilePublic, LevelInfo, DefeatPublic, LedgerEntryPublic
from challengr.services import ledger
from challengr.services.levels import level_info

router = APIRouter(prefix="/profiles", tags=["profiles"])

def profile_public(p: Profile) -> ProfilePublic:
    return ProfilePublic(
        user_id=p.user_id,
        username=p.username,
        role=p.role,
        is_premium=p.is_premium,
        total_points=p.total_points,
        total_defeats=p.total_defeats,
        level=LevelInfo(**level_info(p.total_points)),
    )

async def _load(session: AsyncSession, user_id: UUID) -> Profile:
    # balances move through UPDATE statements; never trust the identity map here
    p = await session.get(Profile, user_id, populate_existing=True)
    if not p:
        raise NotFound("Profile not found")
    return p

@router.get("/me", response_model=ProfilePublic)
async def me(session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    return profile_public(await _load(session, user.user_id))

@router.get("/me/ledger", response_model=list[LedgerEntryPublic])
async def my_ledger(
    limit: int = Query(default=50, ge=1, le=200),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    rows = await ledger.entries_for(session, user.user_id, limit=limit)
    return [
        LedgerEntryPublic(id=e.id, kind=e.kind, amount=e.amount, ref_submission_id=e.ref_submission_id, note=e.note, created_at=e.created_at)
        for e in rows
    ]

@router.get("/{user_id}", response_model=ProfilePublic)
async def get_profile(user_id: UUID, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    return profile_public(await _load(session, user_id))

@router.get("/{user_id}/defeats", response_model=list[DefeatPublic])
async def get_defeats(user_id: UUID, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    await _load(session, user_id)
    rows = await ledger.defeats_for(session, user_id)
    return [DefeatPublic(challenge_id=d.challenge_id, defeats_count=d.defeats_count, last_defeated_at=d.last_defeated_at) for d in rows]
