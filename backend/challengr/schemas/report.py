from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Literal
from uuid import UUID
from datetime import datetime

ReportReason = Literal["inappropriate", "spam", "fake", "offensive", "other"]
ReportStatus = Literal["pending", "reviewed", "dismissed"]

class ReportCreate(BaseModel):
    reason: ReportReason
    description: str = Field(min_length=1, max_length=2000)

class ReportResolve(BaseModel):
    outcome: Literal["reviewed", "dismissed"]

class ReportPublic(BaseModel):
    id: UUID
    submission_id: UUID
    reporter_id: UUID
    reason: ReportReason
    description: str
    status: ReportStatus
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    created_at: datetime
