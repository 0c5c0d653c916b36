from __future__ import annotations
from uuid import UUID
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from challengr.db import utcnow
from challengr.errors import NotFound, AlreadyResolved, DuplicateReport, InvalidReason
from challengr.models.report import SubmissionReport
from challengr.models.submission import Submission

log = structlog.get_logger()

REPORT_REASONS = ("inappropriate", "spam", "fake", "offensive", "other")
REPORT_OUTCOMES = ("reviewed", "dismissed")

# Reports never read or write submissions.status: a moderator resolving a
# report leaves the approve/reject decision exactly as it was.

async def file_report(
    session: AsyncSession,
    *,
    reporter_id: UUID,
    submission_id: UUID,
    reason: str,
    description: str,
) -> SubmissionReport:
    if reason not in REPORT_REASONS:
        raise InvalidReason("Please select a report reason")
    description = (description or "").strip()
    if not description:
        raise InvalidReason("Please provide both reason and description")
    try:
        exists = await session.scalar(select(Submission.id).where(Submission.id == submission_id))
        if not exists:
            raise NotFound("Submission not found")

        dup = await session.scalar(
            select(SubmissionReport.id).where(
                SubmissionReport.submission_id == submission_id,
                SubmissionReport.reporter_id == reporter_id,
                SubmissionReport.status == "pending",
            )
        )
        if dup:
            raise DuplicateReport()

        r = SubmissionReport(
            submission_id=submission_id,
            reporter_id=reporter_id,
            reason=reason,
            description=description,
            status="pending",
            created_at=utcnow(),
        )
        session.add(r)
        try:
            await session.flush()
        except IntegrityError:
            raise DuplicateReport()
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    log.info("report.filed", report_id=str(r.id), submission_id=str(submission_id), reason=reason)
    return r


async def resolve_report(session: AsyncSession, *, moderator_id: UUID, report_id: UUID, outcome: str) -> SubmissionReport:
    """pending -> reviewed|dismissed, exactly once."""
    if outcome not in REPORT_OUTCOMES:
        raise InvalidReason("Outcome must be 'reviewed' or 'dismissed'")
    now = utcnow()
    try:
        res = await session.execute(
            update(SubmissionReport)
            .where(SubmissionReport.id == report_id, SubmissionReport.status == "pending")
            .values(status=outcome, reviewed_by=moderator_id, reviewed_at=now)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            found = await session.scalar(select(SubmissionReport.id).where(SubmissionReport.id == report_id))
            if not found:
                raise NotFound("Report not found")
            raise AlreadyResolved("Report already resolved")
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    r = await session.get(SubmissionReport, report_id, populate_existing=True)
    log.info("report.resolved", report_id=str(report_id), outcome=outcome, moderator_id=str(moderator_id))
    return r


async def list_reports(session: AsyncSession, status: str | None = "pending", limit: int = 50) -> list[SubmissionReport]:
    q = select(SubmissionReport)
    if status:
        q = q.where(SubmissionReport.status == status)
    return (await session.execute(q.order_by(SubmissionReport.created_at.desc()).limit(limit))).scalars().all()


async def count_pending(session: AsyncSession) -> int:
    n = await session.scalar(
        select(func.count()).select_from(SubmissionReport).where(SubmissionReport.status == "pending")
    )
    return int(n or 0)
