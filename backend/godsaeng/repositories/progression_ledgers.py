"""Database-backed progression ledger repository."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import ProgressionLedgerModel


class ProgressionLedgerRepository:
    def get(self, session: Session, user_id: str) -> ProgressionLedgerModel | None:
        return session.get(ProgressionLedgerModel, user_id)

    def get_for_update(self, session: Session, user_id: str) -> ProgressionLedgerModel | None:
        stmt = (
            select(ProgressionLedgerModel)
            .where(ProgressionLedgerModel.user_id == user_id)
            .with_for_update()
        )
        return session.execute(stmt).scalar_one_or_none()

    def provision(
        self,
        session: Session,
        user_id: str,
        *,
        level: int = 1,
        experience: int = 0,
    ) -> ProgressionLedgerModel:
        """Create the ledger for a new user; an existing ledger is returned untouched."""
        model = self.get(session, user_id)
        if model is None:
            model = ProgressionLedgerModel(user_id=user_id, level=level, experience=experience)
            session.add(model)
            session.flush()
        return model

    def apply(
        self,
        session: Session,
        model: ProgressionLedgerModel,
        *,
        level: int,
        experience: int,
    ) -> ProgressionLedgerModel:
        # The flush is version-checked; a concurrent writer raises StaleDataError.
        model.level = level
        model.experience = experience
        session.flush()
        return model


progression_ledgers = ProgressionLedgerRepository()

__all__ = ["ProgressionLedgerRepository", "progression_ledgers"]
