"""ORM models backing study sessions and progression ledgers."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class StudySessionModel(TimestampMixin, Base):
    __tablename__ = "study_sessions"
    __table_args__ = (
        Index("ix_study_sessions_user_open", "user_id", "ended_at"),
        Index("ix_study_sessions_user_started", "user_id", "started_at"),
        CheckConstraint(
            "(ended_at IS NULL AND duration_seconds IS NULL) OR "
            "(ended_at IS NOT NULL AND duration_seconds IS NOT NULL)",
            name="ck_study_sessions_closed_fields",
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class ProgressionLedgerModel(TimestampMixin, Base):
    __tablename__ = "progression_ledgers"
    __table_args__ = (
        CheckConstraint("level >= 0", name="ck_progression_ledgers_level"),
        CheckConstraint("experience >= 0", name="ck_progression_ledgers_experience"),
    )

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    experience: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Every flush of a changed ledger issues UPDATE ... WHERE version = :read_version.
    __mapper_args__ = {"version_id_col": version}


__all__ = [
    "ProgressionLedgerModel",
    "StudySessionModel",
]
