from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from challengr.db import Base, utcnow

class LedgerEntry(Base):
    """
    One row per settlement applied to a reputation account.
    Kinds:
      - APPROVAL_REWARD  => +challenge points to the submitter
      - VALIDATOR_REWARD => +reward to the validator
      - DEFEAT           => amount 0, bumps defeat counters

    Σ(amount) per user == profiles.total_points.
    """
    __tablename__ = "reputation_ledger"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.user_id", ondelete="CASCADE"), index=True, nullable=False
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)

    ref_submission_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("submissions.id", ondelete="RESTRICT"), index=True, nullable=False
    )
    note: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        # A transition settles each (user, kind) at most once
        UniqueConstraint("user_id", "kind", "ref_submission_id", name="uq_ledger_once_per_transition"),
        CheckConstraint("amount >= 0", name="ck_ledger_amount_non_negative"),
    )
