from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from challengr.db import Base, utcnow

class Profile(Base):
    """
    Reputation account, one per identity-provider user.
    total_points / total_defeats are only ever changed by services.ledger.
    """
    __tablename__ = "profiles"

    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True)
    username: Mapped[str | None] = mapped_column(String(64), nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="user")  # admin|moderator|user
    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_defeats: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("total_points >= 0", name="ck_profiles_points_non_negative"),
        CheckConstraint("total_defeats >= 0", name="ck_profiles_defeats_non_negative"),
    )

class ChallengeDefeat(Base):
    __tablename__ = "challenge_defeats"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("profiles.user_id", ondelete="CASCADE"), index=True, nullable=False)
    challenge_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("challenges.id", ondelete="CASCADE"), index=True, nullable=False)
    defeats_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_defeated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "challenge_id", name="uq_challenge_defeat_per_user"),
    )
