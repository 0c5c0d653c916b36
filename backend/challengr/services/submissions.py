from __future__ import annotations
from uuid import UUID
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from challengr.db import utcnow
from challengr.errors import NotFound, NotEligible, AlreadyResolved, DuplicatePending, InvalidReason
from challengr.models.challenge import Challenge, ChallengeProgress
from challengr.models.post import FeedPost
from challengr.models.submission import Submission
from challengr.services import audit, ledger
from challengr.services.config_store import get_number, DEFAULT_CHALLENGE_POINTS, POINTS_FOR_VALIDATOR
from challengr.services.eligibility import eligibility_clause, eligible_validator_ids
from challengr.services.notifications import (
    NotificationEmitter, SubmissionCreated, SubmissionResolved, dispatch_events,
)

log = structlog.get_logger()

REJECTION_REASONS = (
    "Does not meet challenge requirements",
    "Insufficient proof provided",
    "Appears to be fake or staged",
    "Does not match challenge description",
    "Poor quality submission",
    "Other",
)

# Lifecycle:  pending --approve--> approved
#             pending --reject---> rejected
# Both targets are terminal. Resubmitting after a rejection is a new row.

def _clean(text: str | None) -> str | None:
    text = (text or "").strip()
    return text or None


async def challenge_points(session: AsyncSession, ch: Challenge) -> int:
    if ch.points_reward is not None:
        return int(ch.points_reward)
    return await get_number(session, DEFAULT_CHALLENGE_POINTS)

# ---------- create ----------

async def create_submission(
    session: AsyncSession,
    *,
    submitter_id: UUID,
    challenge_id: UUID,
    proof_text: str | None = None,
    image_url: str | None = None,
    video_url: str | None = None,
    emitter: NotificationEmitter | None = None,
) -> Submission:
    """
    Open a new pending submission. Media must already be uploaded; only the
    URLs land here. Side effects in the same transaction: a feed post and the
    submitter's challenge-progress row. After commit the validator pool
    (creator + currently eligible validators) is notified.
    """
    proof_text = _clean(proof_text)
    try:
        ch = await session.get(Challenge, challenge_id)
        if not ch or not ch.is_active:
            raise NotFound("Challenge not found")
        if not (proof_text or image_url or video_url):
            raise InvalidReason("Proof text, image or video is required")

        dup = await session.scalar(
            select(Submission.id).where(
                Submission.user_id == submitter_id,
                Submission.challenge_id == challenge_id,
                Submission.status == "pending",
            )
        )
        if dup:
            raise DuplicatePending()

        now = utcnow()
        s = Submission(
            challenge_id=challenge_id,
            user_id=submitter_id,
            proof_text=proof_text,
            proof_image_url=image_url,
            proof_video_url=video_url,
            status="pending",
            created_at=now,
            updated_at=now,
        )
        session.add(s)
        try:
            # partial unique index catches the race the pre-check cannot
            await session.flush()
        except IntegrityError:
            raise DuplicatePending()

        session.add(FeedPost(
            user_id=submitter_id,
            challenge_id=challenge_id,
            submission_id=s.id,
            content=proof_text,
            image_url=image_url,
            video_url=video_url,
            created_at=now,
        ))

        progress = await session.scalar(
            select(ChallengeProgress).where(
                ChallengeProgress.user_id == submitter_id,
                ChallengeProgress.challenge_id == challenge_id,
            )
        )
        if progress is None:
            session.add(ChallengeProgress(user_id=submitter_id, challenge_id=challenge_id, status="in_progress", started_at=now))

        pool = await eligible_validator_ids(session, challenge_id, submitter_id)
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    log.info("submission.created", submission_id=str(s.id), challenge_id=str(challenge_id), validators=len(pool))
    if emitter is not None:
        dispatch_events(emitter, [SubmissionCreated(
            submission_id=s.id, challenge_id=challenge_id, submitter_id=submitter_id, validator_ids=pool,
        )])
    return s

# ---------- transitions ----------

async def _claim(session: AsyncSession, validator_id: UUID, submission_id: UUID, values: dict) -> Submission:
    """
    Compare-and-set pending -> terminal with eligibility re-checked in the same
    statement. Zero rows means someone else won, the caller is not eligible, or
    the id is unknown; the row is re-read only to tell which.
    """
    res = await session.execute(
        update(Submission)
        .where(
            Submission.id == submission_id,
            Submission.status == "pending",
            eligibility_clause(validator_id, Submission.challenge_id, Submission.user_id),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        current = await session.get(Submission, submission_id, populate_existing=True)
        status, owner = (current.status, current.user_id) if current else (None, None)
        await session.rollback()
        if status is None:
            raise NotFound("Submission not found")
        if status != "pending":
            raise AlreadyResolved()
        if owner == validator_id:
            raise NotEligible("You cannot validate your own submission")
        raise NotEligible()
    return await session.get(Submission, submission_id, populate_existing=True)


async def approve(
    session: AsyncSession,
    *,
    validator_id: UUID,
    submission_id: UUID,
    comment: str | None = None,
    emitter: NotificationEmitter | None = None,
) -> Submission:
    comment = _clean(comment)
    now = utcnow()
    try:
        s = await _claim(session, validator_id, submission_id, {
            "status": "approved",
            "validator_id": validator_id,
            "validated_at": now,
            "updated_at": now,
            "validator_comment": comment,
        })
        ch = await session.get(Challenge, s.challenge_id)
        points = await challenge_points(session, ch)
        reward = await get_number(session, POINTS_FOR_VALIDATOR)

        # audit first: a partial failure must never leave points without a trail
        await audit.record(
            session,
            submission_id=s.id,
            validator_id=validator_id,
            action="approved",
            comment=comment,
            metadata={"challenge_id": str(s.challenge_id), "points_awarded": points, "validator_reward": reward},
        )
        await ledger.settle_approval(
            session,
            submission_id=s.id,
            submitter_id=s.user_id,
            validator_id=validator_id,
            challenge_points=points,
            validator_reward=reward,
        )
        await session.execute(
            update(ChallengeProgress)
            .where(ChallengeProgress.user_id == s.user_id, ChallengeProgress.challenge_id == s.challenge_id)
            .values(status="completed", completed_at=now)
            .execution_options(synchronize_session=False)
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    log.info("submission.approved", submission_id=str(s.id), validator_id=str(validator_id), points=points)
    if emitter is not None:
        dispatch_events(emitter, [SubmissionResolved(
            submission_id=s.id, challenge_id=s.challenge_id, submitter_id=s.user_id,
            validator_id=validator_id, status="approved", points_awarded=points,
        )])
    return s


async def reject(
    session: AsyncSession,
    *,
    validator_id: UUID,
    submission_id: UUID,
    reason: str,
    comment: str | None = None,
    emitter: NotificationEmitter | None = None,
) -> Submission:
    reason = _clean(reason)
    if reason not in REJECTION_REASONS:
        raise InvalidReason("Please select a reason for rejection")
    comment = _clean(comment)
    now = utcnow()
    try:
        s = await _claim(session, validator_id, submission_id, {
            "status": "rejected",
            "validator_id": validator_id,
            "validated_at": now,
            "updated_at": now,
            "validator_comment": comment,
            "rejection_reason": reason,
        })
        await audit.record(
            session,
            submission_id=s.id,
            validator_id=validator_id,
            action="rejected",
            reason=reason,
            comment=comment,
            metadata={"challenge_id": str(s.challenge_id)},
        )
        await ledger.settle_rejection(session, submission_id=s.id, submitter_id=s.user_id, challenge_id=s.challenge_id)
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    log.info("submission.rejected", submission_id=str(s.id), validator_id=str(validator_id), reason=reason)
    if emitter is not None:
        dispatch_events(emitter, [SubmissionResolved(
            submission_id=s.id, challenge_id=s.challenge_id, submitter_id=s.user_id,
            validator_id=validator_id, status="rejected", reason=reason,
        )])
    return s

# ---------- reads ----------

async def get_submission(session: AsyncSession, submission_id: UUID) -> Submission:
    s = await session.get(Submission, submission_id)
    if not s:
        raise NotFound("Submission not found")
    return s


async def list_validation_queue(
    session: AsyncSession,
    validator_id: UUID,
    *,
    challenge_id: UUID | None = None,
    eligible_only: bool = False,
    limit: int = 20,
) -> list[tuple[Submission, bool]]:
    """Pending submissions by other users, each flagged with the caller's eligibility."""
    eligible = eligibility_clause(validator_id, Submission.challenge_id, Submission.user_id)
    q = (
        select(Submission, eligible.label("eligible"))
        .where(Submission.status == "pending", Submission.user_id != validator_id)
    )
    if challenge_id:
        q = q.where(Submission.challenge_id == challenge_id)
    if eligible_only:
        q = q.where(eligible)
    q = q.order_by(Submission.created_at.desc()).limit(limit)
    rows = (await session.execute(q)).all()
    return [(s, bool(ok)) for (s, ok) in rows]


async def list_validated_by(session: AsyncSession, validator_id: UUID, limit: int = 20) -> list[Submission]:
    return (await session.execute(
        select(Submission)
        .where(Submission.validator_id == validator_id, Submission.status.in_(("approved", "rejected")))
        .order_by(Submission.validated_at.desc())
        .limit(limit)
    )).scalars().all()


async def list_user_submissions(session: AsyncSession, user_id: UUID, status: str | None = None, limit: int = 20) -> list[Submission]:
    q = select(Submission).where(Submission.user_id == user_id)
    if status:
        q = q.where(Submission.status == status)
    return (await session.execute(q.order_by(Submission.created_at.desc()).limit(limit))).scalars().all()
