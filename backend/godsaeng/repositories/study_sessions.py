"""Database-backed study session repository."""

from __future__ import annotations

from datetime import datetime
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..db.models import StudySessionModel


class StudySessionRepository:
    """Owner-scoped reads and writes over the study_sessions table.

    Callers own the transaction; nothing here commits.
    """

    def create(self, session: Session, user_id: str, started_at: datetime) -> StudySessionModel:
        model = StudySessionModel(user_id=user_id, started_at=started_at)
        session.add(model)
        session.flush()
        return model

    def get_open_for_update(self, session: Session, user_id: str, session_id: str) -> StudySessionModel | None:
        """Lock the session row if it exists, belongs to ``user_id`` and is still open."""
        stmt = (
            select(StudySessionModel)
            .where(
                StudySessionModel.id == session_id,
                StudySessionModel.user_id == user_id,
                StudySessionModel.ended_at.is_(None),
            )
            .with_for_update()
        )
        return session.execute(stmt).scalar_one_or_none()

    def mark_closed(
        self,
        session: Session,
        user_id: str,
        session_id: str,
        *,
        ended_at: datetime,
        duration_seconds: int,
    ) -> bool:
        """Close an open session. Returns False when the row was no longer open."""
        stmt = (
            update(StudySessionModel)
            .where(
                StudySessionModel.id == session_id,
                StudySessionModel.user_id == user_id,
                StudySessionModel.ended_at.is_(None),
            )
            .values(ended_at=ended_at, duration_seconds=duration_seconds, updated_at=ended_at)
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        return result.rowcount == 1

    def list_for_user(self, session: Session, user_id: str, *, limit: int = 50) -> List[StudySessionModel]:
        stmt = (
            select(StudySessionModel)
            .where(StudySessionModel.user_id == user_id)
            .order_by(StudySessionModel.started_at.desc(), StudySessionModel.id.desc())
            .limit(limit)
        )
        return list(session.execute(stmt).scalars().all())


study_sessions = StudySessionRepository()

__all__ = ["StudySessionRepository", "study_sessions"]
