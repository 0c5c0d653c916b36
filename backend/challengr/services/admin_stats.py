from __future__ import annotations
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from challengr.models.submission import Submission
from challengr.services.audit import validator_leaderboard
from challengr.services.config_store import get_number, LEADERBOARD_SIZE
from challengr.services.reports import count_pending

async def throughput(session: AsyncSession) -> dict[str, int]:
    rows = (await session.execute(
        select(Submission.status, func.count()).group_by(Submission.status)
    )).all()
    counts = {status: int(n) for (status, n) in rows}
    return {
        "total_pending": counts.get("pending", 0),
        "total_approved": counts.get("approved", 0),
        "total_rejected": counts.get("rejected", 0),
    }


async def avg_validation_hours(session: AsyncSession) -> float:
    """Mean of (validated_at - created_at) over resolved submissions, in hours."""
    if session.get_bind().dialect.name == "sqlite":
        # SQLite keeps timestamps as text
        seconds = (func.julianday(Submission.validated_at) - func.julianday(Submission.created_at)) * 86400.0
    else:
        seconds = func.extract("epoch", Submission.validated_at - Submission.created_at)
    avg = await session.scalar(
        select(func.avg(seconds)).where(Submission.status != "pending", Submission.validated_at.is_not(None))
    )
    if avg is None:
        return 0.0
    return round(float(avg) / 3600.0, 2)


async def admin_stats(session: AsyncSession) -> dict:
    size = await get_number(session, LEADERBOARD_SIZE)
    return {
        "pending_reports": await count_pending(session),
        **(await throughput(session)),
        "avg_validation_hours": await avg_validation_hours(session),
        "top_validators": await validator_leaderboard(session, limit=max(1, size)),
    }
