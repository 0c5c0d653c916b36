from __future__ import annotations
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Literal
from uuid import UUID

from challengr.db import get_session
from challengr.auth_deps import require_moderator
from challengr.models.report import SubmissionReport
from challengr.schemas.report import ReportPublic, ReportResolve
from challengr.services.reports import list_reports, resolve_report

router = APIRouter(prefix="/reports", tags=["reports"])

def report_public(r: SubmissionReport) -> ReportPublic:
    return ReportPublic(
        id=r.id,
        submission_id=r.submission_id,
        reporter_id=r.reporter_id,
        reason=r.reason,
        description=r.description,
        status=r.status,
        reviewed_by=r.reviewed_by,
        reviewed_at=r.reviewed_at,
        created_at=r.created_at,
    )

@router.get("", response_model=list[ReportPublic])
async def moderation_queue(
    status: Literal["pending", "reviewed", "dismissed", "all"] = Query(default="pending"),
    limit: int = Query(default=50, ge=1, le=200),
    session: AsyncSession = Depends(get_session),
    user=Depends(require_moderator),
):
    rows = await list_reports(session, None if status == "all" else status, limit=limit)
    return [report_public(r) for r in rows]

@router.post("/{report_id}/resolve", response_model=ReportPublic)
async def resolve(
    report_id: UUID,
    payload: ReportResolve,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_moderator),
):
    r = await resolve_report(session, moderator_id=user.user_id, report_id=report_id, outcome=payload.outcome)
    return report_public(r)
