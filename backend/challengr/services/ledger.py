from __future__ import annotations
from uuid import UUID
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from challengr.db import utcnow
from challengr.errors import InvariantViolation
from challengr.models.ledger import LedgerEntry
from challengr.models.profile import Profile, ChallengeDefeat

log = structlog.get_logger()

APPROVAL_REWARD = "APPROVAL_REWARD"
VALIDATOR_REWARD = "VALIDATOR_REWARD"
DEFEAT = "DEFEAT"

# ---------- helpers ----------

async def _entry_exists(session: AsyncSession, user_id: UUID, kind: str, submission_id: UUID) -> bool:
    found = await session.scalar(
        select(LedgerEntry.id).where(
            LedgerEntry.user_id == user_id,
            LedgerEntry.kind == kind,
            LedgerEntry.ref_submission_id == submission_id,
        )
    )
    return found is not None


async def _credit_points(session: AsyncSession, user_id: UUID, amount: int) -> None:
    """Atomic balance increment; refuses anything that would leave a negative balance."""
    if amount < 0:
        raise InvariantViolation(f"negative credit {amount} for {user_id}")
    res = await session.execute(
        update(Profile)
        .where(Profile.user_id == user_id, Profile.total_points + amount >= 0)
        .values(total_points=Profile.total_points + amount)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        raise InvariantViolation(f"balance update refused for {user_id}")


async def _apply_once(session: AsyncSession, *, user_id: UUID, kind: str, amount: int, submission_id: UUID, note: str) -> bool:
    """Write the ledger row for (user, kind, submission) unless it is already there."""
    if await _entry_exists(session, user_id, kind, submission_id):
        log.info("ledger.replay_ignored", user_id=str(user_id), kind=kind, submission_id=str(submission_id))
        return False
    session.add(LedgerEntry(user_id=user_id, kind=kind, amount=int(amount), ref_submission_id=submission_id, note=note))
    # flush so the unique constraint fires here rather than at commit
    await session.flush()
    return True

# ---------- settlement ----------

async def settle_approval(
    session: AsyncSession,
    *,
    submission_id: UUID,
    submitter_id: UUID,
    validator_id: UUID,
    challenge_points: int,
    validator_reward: int,
) -> bool:
    """
    Credit the submitter with the challenge's points and the validator with the
    validator reward. Idempotent per submission; returns False on replay.
    Caller owns the transaction.
    """
    if challenge_points < 0 or validator_reward < 0:
        raise InvariantViolation("settlement amounts must be non-negative")

    applied = False
    if await _apply_once(session, user_id=submitter_id, kind=APPROVAL_REWARD, amount=challenge_points,
                         submission_id=submission_id, note="submission_approved"):
        await _credit_points(session, submitter_id, challenge_points)
        applied = True
    if await _apply_once(session, user_id=validator_id, kind=VALIDATOR_REWARD, amount=validator_reward,
                         submission_id=submission_id, note="validation_reward"):
        await _credit_points(session, validator_id, validator_reward)
        applied = True

    if applied:
        log.info(
            "ledger.settled",
            transition="approved",
            submission_id=str(submission_id),
            submitter_points=challenge_points,
            validator_points=validator_reward,
        )
    return applied


async def settle_rejection(session: AsyncSession, *, submission_id: UUID, submitter_id: UUID, challenge_id: UUID) -> bool:
    """Bump the submitter's total and per-challenge defeat counters by one. No point change."""
    if not await _apply_once(session, user_id=submitter_id, kind=DEFEAT, amount=0,
                             submission_id=submission_id, note="submission_rejected"):
        return False

    res = await session.execute(
        update(Profile)
        .where(Profile.user_id == submitter_id)
        .values(total_defeats=Profile.total_defeats + 1)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        raise InvariantViolation(f"no reputation account for {submitter_id}")

    now = utcnow()
    res = await session.execute(
        update(ChallengeDefeat)
        .where(ChallengeDefeat.user_id == submitter_id, ChallengeDefeat.challenge_id == challenge_id)
        .values(defeats_count=ChallengeDefeat.defeats_count + 1, last_defeated_at=now)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        session.add(ChallengeDefeat(user_id=submitter_id, challenge_id=challenge_id, defeats_count=1, last_defeated_at=now))
        await session.flush()

    log.info("ledger.settled", transition="rejected", submission_id=str(submission_id))
    return True

# ---------- reads ----------

async def balance_of(session: AsyncSession, user_id: UUID) -> int:
    total = await session.scalar(select(Profile.total_points).where(Profile.user_id == user_id))
    return int(total or 0)


async def ledger_total(session: AsyncSession, user_id: UUID) -> int:
    """Σ(amount) of the user's entries; equals balance_of when the books are consistent."""
    total = await session.scalar(
        select(func.coalesce(func.sum(LedgerEntry.amount), 0)).where(LedgerEntry.user_id == user_id)
    )
    return int(total or 0)


async def entries_for(session: AsyncSession, user_id: UUID, limit: int = 50) -> list[LedgerEntry]:
    return (await session.execute(
        select(LedgerEntry).where(LedgerEntry.user_id == user_id).order_by(LedgerEntry.created_at.desc()).limit(limit)
    )).scalars().all()


async def defeats_for(session: AsyncSession, user_id: UUID) -> list[ChallengeDefeat]:
    return (await session.execute(
        select(ChallengeDefeat).where(ChallengeDefeat.user_id == user_id).order_by(ChallengeDefeat.defeats_count.desc())
    )).scalars().all()
