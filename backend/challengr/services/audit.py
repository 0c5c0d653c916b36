from __future__ import annotations
from typing import Any
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from challengr.errors import AlreadyResolved
from challengr.models.audit import ValidationAudit
from challengr.models.profile import Profile

AUDIT_ACTIONS = ("approved", "rejected")

# Append-only: no update or delete helpers.

async def record(
    session: AsyncSession,
    *,
    submission_id: UUID,
    validator_id: UUID,
    action: str,
    reason: str | None = None,
    comment: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> ValidationAudit:
    """Append the decision for a submission. A second decision for the same submission is refused."""
    if action not in AUDIT_ACTIONS:
        raise ValueError(f"unknown audit action {action!r}")
    row = ValidationAudit(
        submission_id=submission_id,
        validator_id=validator_id,
        action=action,
        reason=reason,
        comment=comment,
        meta_json=dict(metadata or {}),
    )
    session.add(row)
    try:
        await session.flush()
    except IntegrityError:
        raise AlreadyResolved()
    return row


async def history_for_submission(session: AsyncSession, submission_id: UUID) -> list[ValidationAudit]:
    return (await session.execute(
        select(ValidationAudit)
        .where(ValidationAudit.submission_id == submission_id)
        .order_by(ValidationAudit.created_at.asc())
    )).scalars().all()


async def count_for_submission(session: AsyncSession, submission_id: UUID) -> int:
    n = await session.scalar(
        select(func.count()).select_from(ValidationAudit).where(ValidationAudit.submission_id == submission_id)
    )
    return int(n or 0)


async def validator_leaderboard(session: AsyncSession, limit: int = 5, action: str | None = None) -> list[dict]:
    """Top validators by number of audit records, optionally only one action."""
    cnt = func.count(ValidationAudit.id).label("validation_count")
    q = select(ValidationAudit.validator_id, Profile.username, cnt).join(
        Profile, Profile.user_id == ValidationAudit.validator_id, isouter=True
    )
    if action:
        q = q.where(ValidationAudit.action == action)
    q = q.group_by(ValidationAudit.validator_id, Profile.username).order_by(cnt.desc(), ValidationAudit.validator_id).limit(limit)
    rows = (await session.execute(q)).all()
    return [
        {"validator_id": vid, "username": uname or "", "validation_count": int(n)}
        for (vid, uname, n) in rows
    ]
