from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Literal
from uuid import UUID
from datetime import datetime

class AuditPublic(BaseModel):
    id: UUID
    submission_id: UUID
    validator_id: UUID
    action: Literal["approved", "rejected"]
    reason: str | None = None
    comment: str | None = None
    metadata: dict = Field(default_factory=dict)
    created_at: datetime

class LeaderboardRow(BaseModel):
    validator_id: UUID
    username: str
    validation_count: int
