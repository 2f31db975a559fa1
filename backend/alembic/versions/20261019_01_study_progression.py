"""Study sessions and progression ledgers."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20261019_01_study_progression"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "study_sessions",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
        sa.CheckConstraint(
            "(ended_at IS NULL AND duration_seconds IS NULL) OR "
            "(ended_at IS NOT NULL AND duration_seconds IS NOT NULL)",
            name="ck_study_sessions_closed_fields",
        ),
    )
    op.create_index("ix_study_sessions_user_open", "study_sessions", ["user_id", "ended_at"])
    op.create_index("ix_study_sessions_user_started", "study_sessions", ["user_id", "started_at"])

    op.create_table(
        "progression_ledgers",
        sa.Column("user_id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("experience", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.CheckConstraint("level >= 0", name="ck_progression_ledgers_level"),
        sa.CheckConstraint("experience >= 0", name="ck_progression_ledgers_experience"),
    )


def downgrade() -> None:
    op.drop_table("progression_ledgers")
    op.drop_index("ix_study_sessions_user_started", table_name="study_sessions")
    op.drop_index("ix_study_sessions_user_open", table_name="study_sessions")
    op.drop_table("study_sessions")
