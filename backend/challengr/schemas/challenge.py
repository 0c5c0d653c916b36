from __future__ import annotations
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime

class ChallengeCreate(BaseModel):
    title: str = Field(min_length=3, max_length=120)
    description: str | None = None
    points_reward: int | None = Field(default=None, ge=0)

class ChallengePublic(BaseModel):
    id: UUID
    created_by: UUID
    title: str
    description: str | None
    points_reward: int
    is_active: bool
    created_at: datetime
    is_owner: bool = False

class FeedPostPublic(BaseModel):
    id: UUID
    user_id: UUID
    challenge_id: UUID
    submission_id: UUID | None = None
    content: str | None = None
    image_url: str | None = None
    video_url: str | None = None
    created_at: datetime

class NotificationPublic(BaseModel):
    id: UUID
    kind: str
    payload: dict
    created_at: datetime
    read_at: datetime | None = None
