from __future__ import annotations
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

def _uuid(name: str, *args, **kw) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), *args, **kw)

def _ts(name: str, nullable: bool = False, default_now: bool = True) -> sa.Column:
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("now()") if default_now else None,
        nullable=nullable,
    )

def upgrade() -> None:
    op.create_table(
        "profiles",
        _uuid("user_id", primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=64), nullable=True),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="user"),
        sa.Column("is_premium", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_defeats", sa.Integer(), nullable=False, server_default="0"),
        _ts("created_at"),
        sa.CheckConstraint("total_points >= 0", name="ck_profiles_points_non_negative"),
        sa.CheckConstraint("total_defeats >= 0", name="ck_profiles_defeats_non_negative"),
    )

    op.create_table(
        "challenges",
        _uuid("id", primary_key=True, nullable=False),
        _uuid("created_by", sa.ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("points_reward", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _ts("created_at"),
    )
    op.create_index("ix_challenges_created_by", "challenges", ["created_by"])

    op.create_table(
        "challenge_progress",
        _uuid("id", primary_key=True, nullable=False),
        _uuid("challenge_id", sa.ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False),
        _uuid("user_id", sa.ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="in_progress"),
        _ts("started_at"),
        _ts("completed_at", nullable=True, default_now=False),
        sa.UniqueConstraint("user_id", "challenge_id", name="uq_progress_per_user_challenge"),
    )
    op.create_index("ix_challenge_progress_challenge_id", "challenge_progress", ["challenge_id"])
    op.create_index("ix_challenge_progress_user_id", "challenge_progress", ["user_id"])

    op.create_table(
        "submissions",
        _uuid("id", primary_key=True, nullable=False),
        _uuid("challenge_id", sa.ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False),
        _uuid("user_id", sa.ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("proof_text", sa.Text(), nullable=True),
        sa.Column("proof_image_url", sa.Text(), nullable=True),
        sa.Column("proof_video_url", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        _ts("created_at"),
        _ts("updated_at"),
        _ts("validated_at", nullable=True, default_now=False),
        _uuid("validator_id", sa.ForeignKey("profiles.user_id", ondelete="SET NULL"), nullable=True),
        sa.Column("validator_comment", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.String(length=255), nullable=True),
        sa.CheckConstraint("status IN ('pending','approved','rejected')", name="ck_submissions_status"),
        sa.CheckConstraint(
            "(status = 'rejected' AND rejection_reason IS NOT NULL) OR (status <> 'rejected' AND rejection_reason IS NULL)",
            name="ck_submissions_reason_iff_rejected",
        ),
    )
    op.create_index("ix_submissions_challenge_id", "submissions", ["challenge_id"])
    op.create_index("ix_submissions_user_id", "submissions", ["user_id"])
    op.create_index("ix_submissions_validator_id", "submissions", ["validator_id"])
    # at most one unresolved submission per (submitter, challenge)
    op.execute("""
        CREATE UNIQUE INDEX uq_submissions_one_pending
        ON submissions (user_id, challenge_id) WHERE status = 'pending'
    """)

    op.create_table(
        "validation_audit",
        _uuid("id", primary_key=True, nullable=False),
        _uuid("submission_id", sa.ForeignKey("submissions.id", ondelete="RESTRICT"), nullable=False, unique=True),
        _uuid("validator_id", sa.ForeignKey("profiles.user_id", ondelete="RESTRICT"), nullable=False),
        sa.Column("action", sa.String(length=16), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'{}'::jsonb"), nullable=False),
        _ts("created_at"),
        sa.CheckConstraint("action IN ('approved','rejected')", name="ck_validation_audit_action"),
    )
    op.create_index("ix_validation_audit_validator_id", "validation_audit", ["validator_id"])
    # append-only at the database level too
    op.execute("""
        CREATE OR REPLACE FUNCTION validation_audit_immutable() RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION 'validation_audit is append-only';
        END;
        $$ LANGUAGE plpgsql
    """)
    op.execute("""
        CREATE TRIGGER trg_validation_audit_immutable
        BEFORE UPDATE OR DELETE ON validation_audit
        FOR EACH ROW EXECUTE FUNCTION validation_audit_immutable()
    """)

    op.create_table(
        "reputation_ledger",
        _uuid("id", primary_key=True, nullable=False),
        _uuid("user_id", sa.ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        _uuid("ref_submission_id", sa.ForeignKey("submissions.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("note", sa.String(length=255), nullable=True),
        _ts("created_at"),
        sa.UniqueConstraint("user_id", "kind", "ref_submission_id", name="uq_ledger_once_per_transition"),
        sa.CheckConstraint("amount >= 0", name="ck_ledger_amount_non_negative"),
    )
    op.create_index("ix_reputation_ledger_user_id", "reputation_ledger", ["user_id"])
    op.create_index("ix_reputation_ledger_ref_submission_id", "reputation_ledger", ["ref_submission_id"])

    op.create_table(
        "challenge_defeats",
        _uuid("id", primary_key=True, nullable=False),
        _uuid("user_id", sa.ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False),
        _uuid("challenge_id", sa.ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False),
        sa.Column("defeats_count", sa.Integer(), nullable=False, server_default="0"),
        _ts("last_defeated_at", nullable=True, default_now=False),
        _ts("created_at"),
        sa.UniqueConstraint("user_id", "challenge_id", name="uq_challenge_defeat_per_user"),
    )
    op.create_index("ix_challenge_defeats_user_id", "challenge_defeats", ["user_id"])
    op.create_index("ix_challenge_defeats_challenge_id", "challenge_defeats", ["challenge_id"])

    op.create_table(
        "submission_reports",
        _uuid("id", primary_key=True, nullable=False),
        _uuid("submission_id", sa.ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False),
        _uuid("reporter_id", sa.ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("reason", sa.String(length=32), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        _uuid("reviewed_by", sa.ForeignKey("profiles.user_id", ondelete="SET NULL"), nullable=True),
        _ts("reviewed_at", nullable=True, default_now=False),
        _ts("created_at"),
        sa.CheckConstraint("status IN ('pending','reviewed','dismissed')", name="ck_submission_reports_status"),
    )
    op.create_index("ix_submission_reports_submission_id", "submission_reports", ["submission_id"])
    op.create_index("ix_submission_reports_reporter_id", "submission_reports", ["reporter_id"])
    op.execute("""
        CREATE UNIQUE INDEX uq_reports_one_pending_per_reporter
        ON submission_reports (submission_id, reporter_id) WHERE status = 'pending'
    """)

    op.create_table(
        "admin_config",
        sa.Column("key", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("value", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        _ts("updated_at"),
    )
    op.execute("""
        INSERT INTO admin_config (key, value, description) VALUES
        ('points_for_validator', '5'::jsonb, 'Points awarded to a validator per decision'),
        ('default_challenge_points', '10'::jsonb, 'Points for challenges without an explicit reward'),
        ('leaderboard_size', '5'::jsonb, 'Validators shown on the admin leaderboard')
    """)

    op.create_table(
        "feed_posts",
        _uuid("id", primary_key=True, nullable=False),
        _uuid("user_id", sa.ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False),
        _uuid("challenge_id", sa.ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False),
        _uuid("submission_id", sa.ForeignKey("submissions.id", ondelete="SET NULL"), nullable=True),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("video_url", sa.Text(), nullable=True),
        _ts("created_at"),
    )
    op.create_index("ix_feed_posts_user_id", "feed_posts", ["user_id"])
    op.create_index("ix_feed_posts_challenge_id", "feed_posts", ["challenge_id"])

    op.create_table(
        "notifications",
        _uuid("id", primary_key=True, nullable=False),
        _uuid("user_id", nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'{}'::jsonb"), nullable=False),
        _ts("created_at"),
        _ts("read_at", nullable=True, default_now=False),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])

def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("feed_posts")
    op.drop_table("admin_config")
    op.execute("DROP INDEX IF EXISTS uq_reports_one_pending_per_reporter")
    op.drop_table("submission_reports")
    op.drop_table("challenge_defeats")
    op.drop_table("reputation_ledger")
    op.execute("DROP TRIGGER IF EXISTS trg_validation_audit_immutable ON validation_audit")
    op.execute("DROP FUNCTION IF EXISTS validation_audit_immutable()")
    op.drop_table("validation_audit")
    op.execute("DROP INDEX IF EXISTS uq_submissions_one_pending")
    op.drop_table("submissions")
    op.drop_table("challenge_progress")
    op.drop_table("challenges")
    op.drop_table("profiles")
