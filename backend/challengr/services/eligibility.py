from __future__ import annotations
from uuid import UUID
from sqlalchemy import select, exists, and_, or_, literal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlalchemy.sql.elements import ColumnElement

from challengr.models.challenge import Challenge
from challengr.models.submission import Submission

# The single validator rule. Queue listing, the single check and the
# commit-time transition all build on eligibility_clause:
#
#   validator != submitter
#   AND (validator created the challenge
#        OR validator has an approved submission for the challenge)
#
# Both grants are monotonic: once true they stay true.

def eligibility_clause(validator_id: UUID, challenge_id_col, submitter_id_col) -> ColumnElement[bool]:
    """SQL predicate; the column arguments may be correlated columns or literals."""
    prior = aliased(Submission)
    is_creator = exists().where(Challenge.id == challenge_id_col, Challenge.created_by == validator_id)
    has_approved = exists().where(
        prior.challenge_id == challenge_id_col,
        prior.user_id == validator_id,
        prior.status == "approved",
    )
    return and_(submitter_id_col != validator_id, or_(is_creator, has_approved))


async def can_validate(session: AsyncSession, validator_id: UUID, challenge_id: UUID, submitter_id: UUID) -> bool:
    if validator_id == submitter_id:
        return False
    ok = await session.scalar(
        select(eligibility_clause(
            validator_id,
            literal(challenge_id, Challenge.id.type),
            literal(submitter_id, Submission.user_id.type),
        ))
    )
    return bool(ok)


async def eligible_validator_ids(session: AsyncSession, challenge_id: UUID, submitter_id: UUID) -> list[UUID]:
    """Current validator pool for a new submission: creator first, then users with an approved submission."""
    ch = await session.get(Challenge, challenge_id)
    pool: list[UUID] = []
    if ch and ch.created_by != submitter_id:
        pool.append(ch.created_by)
    approved = (await session.execute(
        select(Submission.user_id)
        .where(
            Submission.challenge_id == challenge_id,
            Submission.status == "approved",
            Submission.user_id != submitter_id,
        )
        .distinct()
    )).scalars().all()
    for uid in approved:
        if uid not in pool:
            pool.append(uid)
    return pool
