from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Literal
from uuid import UUID
from datetime import datetime

SubmissionStatus = Literal["pending", "approved", "rejected"]

class SubmissionPublic(BaseModel):
    id: UUID
    challenge_id: UUID
    user_id: UUID
    proof_text: str | None = None
    proof_image_url: str | None = None
    proof_video_url: str | None = None
    status: SubmissionStatus
    created_at: datetime
    validated_at: datetime | None = None
    validator_id: UUID | None = None
    validator_comment: str | None = None
    rejection_reason: str | None = None

class ApproveRequest(BaseModel):
    comment: str | None = Field(default=None, max_length=2000)

class RejectRequest(BaseModel):
    # checked against the fixed reason list in services.submissions
    reason: str = Field(min_length=1, max_length=255)
    comment: str | None = Field(default=None, max_length=2000)

class QueueItem(BaseModel):
    submission: SubmissionPublic
    eligible: bool
