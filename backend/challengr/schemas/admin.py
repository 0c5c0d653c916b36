from __future__ import annotations
from pydantic import BaseModel
from typing import Any
from challengr.schemas.audit import LeaderboardRow

class AdminStats(BaseModel):
    pending_reports: int
    total_pending: int
    total_approved: int
    total_rejected: int
    avg_validation_hours: float
    top_validators: list[LeaderboardRow]

class ConfigEntry(BaseModel):
    key: str
    value: Any
    description: str | None = None
    is_default: bool = False

class ConfigUpdate(BaseModel):
    value: int | float | str
    description: str | None = None
