"""Study session lifecycle: opening, closing and awarding experience."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Literal, Optional

from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .db.models import ProgressionLedgerModel, StudySessionModel
from .db.session import DatabaseNotConfiguredError, session_scope
from .progression import (
    as_utc,
    duration_seconds,
    exp_required,
    experience_for_duration,
    is_below_noise_floor,
    resolve_level_up,
)
from .repositories.progression_ledgers import ProgressionLedgerRepository, progression_ledgers
from .repositories.study_sessions import StudySessionRepository, study_sessions
from .telemetry import emit_event

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# Failures below the coordinator that surface to callers as StorageFailureError.
_STORAGE_ERRORS = (SQLAlchemyError, DatabaseNotConfiguredError)


class StudySessionError(Exception):
    """Base class for failures surfaced by the session coordinator."""


class SessionNotFoundError(StudySessionError, LookupError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"No open study session '{session_id}' for the current user.")
        self.session_id = session_id


class LedgerMissingError(StudySessionError, LookupError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"Progression ledger for user '{user_id}' does not exist.")
        self.user_id = user_id


class StorageFailureError(StudySessionError):
    pass


class StudySession(BaseModel):
    session_id: str
    user_id: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_seconds: Optional[int] = Field(default=None, ge=0)

    @property
    def is_open(self) -> bool:
        return self.ended_at is None


class ProgressionSnapshot(BaseModel):
    user_id: str
    level: int = Field(ge=0)
    experience: int = Field(ge=0)
    exp_required: int = Field(gt=0)


class ClosureOutcome(BaseModel):
    status: Literal["closed", "below_threshold"]
    session_id: str
    duration_seconds: int = Field(ge=0)
    experience_awarded: int = Field(default=0, ge=0)
    level: Optional[int] = None
    experience: Optional[int] = None
    levels_gained: int = Field(default=0, ge=0)
    level_up_occurred: bool = False
    ended_at: Optional[datetime] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_user_id(user_id: str) -> str:
    normalized = str(user_id).strip()
    if not normalized:
        raise ValueError("User id cannot be empty.")
    return normalized


def _session_to_domain(model: StudySessionModel) -> StudySession:
    return StudySession(
        session_id=model.id,
        user_id=model.user_id,
        started_at=as_utc(model.started_at),
        ended_at=as_utc(model.ended_at) if model.ended_at else None,
        duration_seconds=model.duration_seconds,
    )


def _snapshot(model: ProgressionLedgerModel) -> ProgressionSnapshot:
    return ProgressionSnapshot(
        user_id=model.user_id,
        level=model.level,
        experience=model.experience,
        exp_required=exp_required(model.level),
    )


class StudySessionCoordinator:
    """Runs each close as one transaction across the session row and the ledger row.

    Row locks are taken in a fixed order (session, then ledger) and both
    writes are conditional, so concurrent closes of the same session or the
    same ledger serialize in the database rather than in this process.
    """

    def __init__(
        self,
        clock: Clock = _utcnow,
        sessions: StudySessionRepository = study_sessions,
        ledgers: ProgressionLedgerRepository = progression_ledgers,
    ) -> None:
        self._clock = clock
        self._sessions = sessions
        self._ledgers = ledgers

    def open_session(self, user_id: str) -> StudySession:
        normalized = _normalize_user_id(user_id)
        started_at = self._clock()
        try:
            with session_scope() as session:
                opened = _session_to_domain(self._sessions.create(session, normalized, started_at))
        except _STORAGE_ERRORS as exc:
            logger.exception("Failed to open study session for %s", normalized)
            raise StorageFailureError("Could not open the study session.") from exc

        logger.info("Opened study session %s for %s", opened.session_id, normalized)
        emit_event(
            "study_session_opened",
            user_id=normalized,
            session_id=opened.session_id,
            started_at=opened.started_at,
        )
        return opened

    def close_session(self, user_id: str, session_id: str) -> ClosureOutcome:
        normalized = _normalize_user_id(user_id)
        try:
            with session_scope() as session:
                outcome = self._close(session, normalized, session_id)
        except _STORAGE_ERRORS as exc:
            logger.exception("Closing study session %s for %s rolled back", session_id, normalized)
            raise StorageFailureError("Could not close the study session.") from exc

        if outcome.status == "below_threshold":
            logger.info("Ignored study session %s for %s: below noise floor", session_id, normalized)
            emit_event("study_session_below_threshold", user_id=normalized, session_id=session_id)
            return outcome

        logger.info(
            "Closed study session %s for %s (%ss, +%s exp)",
            session_id,
            normalized,
            outcome.duration_seconds,
            outcome.experience_awarded,
        )
        emit_event(
            "study_session_closed",
            user_id=normalized,
            session_id=session_id,
            duration_seconds=outcome.duration_seconds,
            experience_awarded=outcome.experience_awarded,
        )
        if outcome.level_up_occurred:
            emit_event(
                "progression_level_up",
                user_id=normalized,
                level=outcome.level,
                levels_gained=outcome.levels_gained,
            )
        return outcome

    def list_sessions(self, user_id: str, *, limit: int = 50) -> List[StudySession]:
        normalized = _normalize_user_id(user_id)
        try:
            with session_scope(commit=False) as session:
                rows = self._sessions.list_for_user(session, normalized, limit=limit)
                return [_session_to_domain(row) for row in rows]
        except _STORAGE_ERRORS as exc:
            raise StorageFailureError("Could not load study sessions.") from exc

    def get_progression(self, user_id: str) -> ProgressionSnapshot:
        normalized = _normalize_user_id(user_id)
        try:
            with session_scope(commit=False) as session:
                model = self._ledgers.get(session, normalized)
                if model is None:
                    raise LedgerMissingError(normalized)
                return _snapshot(model)
        except _STORAGE_ERRORS as exc:
            raise StorageFailureError("Could not load the progression ledger.") from exc

    def _close(self, session: Session, user_id: str, session_id: str) -> ClosureOutcome:
        model = self._sessions.get_open_for_update(session, user_id, session_id)
        if model is None:
            raise SessionNotFoundError(session_id)

        ended_at = self._clock()
        seconds = duration_seconds(model.started_at, ended_at)
        if is_below_noise_floor(seconds):
            # Nothing is recorded; the session stays open for a later close.
            session.rollback()
            return ClosureOutcome(status="below_threshold", session_id=session_id, duration_seconds=0)

        award = experience_for_duration(seconds)
        level: Optional[int] = None
        experience: Optional[int] = None
        levels_gained = 0
        if award > 0:
            ledger = self._ledgers.get_for_update(session, user_id)
            if ledger is None:
                raise LedgerMissingError(user_id)
            result = resolve_level_up(ledger.level, ledger.experience, award)
            self._ledgers.apply(session, ledger, level=result.level, experience=result.experience)
            level, experience, levels_gained = result.level, result.experience, result.levels_gained
        else:
            ledger = self._ledgers.get(session, user_id)
            if ledger is not None:
                level, experience = ledger.level, ledger.experience

        if not self._sessions.mark_closed(
            session, user_id, session_id, ended_at=ended_at, duration_seconds=seconds
        ):
            raise SessionNotFoundError(session_id)

        return ClosureOutcome(
            status="closed",
            session_id=session_id,
            duration_seconds=seconds,
            experience_awarded=award,
            level=level,
            experience=experience,
            levels_gained=levels_gained,
            level_up_occurred=levels_gained > 0,
            ended_at=ended_at,
        )


coordinator = StudySessionCoordinator()

__all__ = [
    "ClosureOutcome",
    "LedgerMissingError",
    "ProgressionSnapshot",
    "SessionNotFoundError",
    "StorageFailureError",
    "StudySession",
    "StudySessionCoordinator",
    "StudySessionError",
    "coordinator",
]
