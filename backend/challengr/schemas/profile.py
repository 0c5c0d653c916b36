from __future__ import annotations
from pydantic import BaseModel
from uuid import UUID
from datetime import datetime

class LevelInfo(BaseModel):
    level: int
    title: str
    points_required: int
    points_to_next_level: int
    progress: float

class ProfilePublic(BaseModel):
    user_id: UUID
    username: str | None = None
    role: str
    is_premium: bool
    total_points: int
    total_defeats: int
    level: LevelInfo

class DefeatPublic(BaseModel):
    challenge_id: UUID
    defeats_count: int
    last_defeated_at: datetime | None = None

class LedgerEntryPublic(BaseModel):
    id: UUID
    kind: str
    amount: int
    ref_submission_id: UUID
    note: str | None = None
    created_at: datetime
