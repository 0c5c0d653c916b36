from __future__ import annotations
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from challengr.db import get_session
from challengr.auth_deps import get_current_user
from challengr.schemas.submission import QueueItem, SubmissionPublic
from challengr.schemas.audit import LeaderboardRow
from challengr.services import submissions as machine
from challengr.services.audit import validator_leaderboard
from challengr.routes.submissions import submission_public

router = APIRouter(tags=["validation"])

@router.get("/validation-queue", response_model=list[QueueItem])
async def validation_queue(
    challenge_id: UUID | None = Query(default=None),
    eligible_only: bool = Query(default=False),
    limit: int = Query(default=20, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    """
    Pending submissions from other users. `eligible` is computed with the same
    rule the approve/reject transition re-checks, so it can only be stale in
    the granting direction.
    """
    rows = await machine.list_validation_queue(
        session, user.user_id, challenge_id=challenge_id, eligible_only=eligible_only, limit=limit,
    )
    return [QueueItem(submission=submission_public(s), eligible=ok) for (s, ok) in rows]

@router.get("/validation-queue/history", response_model=list[SubmissionPublic])
async def my_validations(
    limit: int = Query(default=20, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    return [submission_public(s) for s in await machine.list_validated_by(session, user.user_id, limit=limit)]

@router.get("/validators/leaderboard", response_model=list[LeaderboardRow])
async def leaderboard(
    limit: int = Query(default=10, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    # approved decisions only
    return await validator_leaderboard(session, limit=limit, action="approved")
