from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException, Form, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from challengr.db import get_session
from challengr.auth_deps import get_current_user, require_moderator
from challengr.config import settings
from challengr.errors import NotFound
from challengr.models.challenge import Challenge
from challengr.models.submission import Submission
from challengr.models.audit import ValidationAudit
from challengr.schemas.submission import SubmissionPublic, ApproveRequest, RejectRequest
from challengr.schemas.report import ReportCreate, ReportPublic
from challengr.schemas.audit import AuditPublic
from challengr.services import submissions as machine
from challengr.services import audit as audit_trail
from challengr.services.media import check_image, check_video
from challengr.services.notifications import NotificationEmitter, get_notification_emitter
from challengr.services.reports import file_report
from challengr.services.storage import MediaStore, get_media_store
from challengr.routes.reports import report_public

router = APIRouter(prefix="/submissions", tags=["submissions"])

def submission_public(s: Submission) -> SubmissionPublic:
    return SubmissionPublic(
        id=s.id,
        challenge_id=s.challenge_id,
        user_id=s.user_id,
        proof_text=s.proof_text,
        proof_image_url=s.proof_image_url,
        proof_video_url=s.proof_video_url,
        status=s.status,
        created_at=s.created_at,
        validated_at=s.validated_at,
        validator_id=s.validator_id,
        validator_comment=s.validator_comment,
        rejection_reason=s.rejection_reason,
    )

def audit_public(a: ValidationAudit) -> AuditPublic:
    return AuditPublic(
        id=a.id,
        submission_id=a.submission_id,
        validator_id=a.validator_id,
        action=a.action,
        reason=a.reason,
        comment=a.comment,
        metadata=a.meta_json or {},
        created_at=a.created_at,
    )

async def _read_upload(f: UploadFile) -> bytes:
    data = await f.read()
    if not data:
        raise HTTPException(status_code=400, detail=f"Empty file: {f.filename}")
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="File too large")
    return data

@router.post("", response_model=SubmissionPublic, status_code=201)
async def create_submission(
    challenge_id: UUID = Form(...),
    proof_text: str | None = Form(default=None),
    image: UploadFile | None = File(default=None, description="JPEG/PNG proof"),
    video: UploadFile | None = File(default=None, description="MP4/MOV/WebM proof"),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
    media: MediaStore = Depends(get_media_store),
    emitter: NotificationEmitter = Depends(get_notification_emitter),
):
    ch = await session.get(Challenge, challenge_id)
    if not ch or not ch.is_active:
        raise NotFound("Challenge not found")

    # Uploads happen before any write; a media failure leaves no submission behind
    image_url = video_url = None
    if image is not None:
        data = await _read_upload(image)
        image_url = media.upload(data, check_image(data))
    if video is not None:
        data = await _read_upload(video)
        video_url = media.upload(data, check_video(video.content_type))

    s = await machine.create_submission(
        session,
        submitter_id=user.user_id,
        challenge_id=challenge_id,
        proof_text=proof_text,
        image_url=image_url,
        video_url=video_url,
        emitter=emitter,
    )
    return submission_public(s)

@router.get("/mine", response_model=list[SubmissionPublic])
async def my_submissions(session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    return [submission_public(s) for s in await machine.list_user_submissions(session, user.user_id)]

@router.get("/{submission_id}", response_model=SubmissionPublic)
async def get_submission(submission_id: UUID, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    return submission_public(await machine.get_submission(session, submission_id))

@router.post("/{submission_id}/approve", response_model=SubmissionPublic)
async def approve_submission(
    submission_id: UUID,
    payload: ApproveRequest | None = None,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
    emitter: NotificationEmitter = Depends(get_notification_emitter),
):
    s = await machine.approve(
        session,
        validator_id=user.user_id,
        submission_id=submission_id,
        comment=payload.comment if payload else None,
        emitter=emitter,
    )
    return submission_public(s)

@router.post("/{submission_id}/reject", response_model=SubmissionPublic)
async def reject_submission(
    submission_id: UUID,
    payload: RejectRequest,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
    emitter: NotificationEmitter = Depends(get_notification_emitter),
):
    s = await machine.reject(
        session,
        validator_id=user.user_id,
        submission_id=submission_id,
        reason=payload.reason,
        comment=payload.comment,
        emitter=emitter,
    )
    return submission_public(s)

@router.post("/{submission_id}/report", response_model=ReportPublic, status_code=201)
async def report_submission(
    submission_id: UUID,
    payload: ReportCreate,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    r = await file_report(
        session,
        reporter_id=user.user_id,
        submission_id=submission_id,
        reason=payload.reason,
        description=payload.description,
    )
    return report_public(r)

@router.get("/{submission_id}/audit", response_model=list[AuditPublic])
async def submission_audit(submission_id: UUID, session: AsyncSession = Depends(get_session), user=Depends(require_moderator)):
    await machine.get_submission(session, submission_id)
    return [audit_public(a) for a in await audit_trail.history_for_submission(session, submission_id)]
