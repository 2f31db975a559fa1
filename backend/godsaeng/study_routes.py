"""Stopwatch endpoints: start a study session, stop it, list past sessions."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from .api_models import (
    StudySessionClosurePayload,
    StudySessionListPayload,
    StudySessionPayload,
    StudySessionStartPayload,
)
from .identity import get_current_user_id
from .progression import NOISE_FLOOR_SECONDS
from .study_sessions import (
    ClosureOutcome,
    LedgerMissingError,
    SessionNotFoundError,
    StorageFailureError,
    StudySessionCoordinator,
    coordinator,
)

router = APIRouter(prefix="/api/study", tags=["study"])
logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 200


def get_coordinator() -> StudySessionCoordinator:
    return coordinator


def _error(status_code: int, code: str, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"code": code, "message": message})


def _closure_payload(outcome: ClosureOutcome) -> StudySessionClosurePayload:
    if outcome.status == "below_threshold":
        message = f"Sessions shorter than {NOISE_FLOOR_SECONDS} seconds are not recorded."
    else:
        message = "Study session stopped and recorded."
    return StudySessionClosurePayload(
        status=outcome.status,
        session_id=outcome.session_id,
        duration_seconds=outcome.duration_seconds,
        duration_minutes=round(outcome.duration_seconds / 60, 2),
        experience_awarded=outcome.experience_awarded,
        level=outcome.level,
        experience=outcome.experience,
        level_up_occurred=outcome.level_up_occurred,
        message=message,
    )


@router.post("/start", response_model=StudySessionStartPayload, status_code=status.HTTP_201_CREATED)
def start_study_session(
    user_id: str = Depends(get_current_user_id),
    sessions: StudySessionCoordinator = Depends(get_coordinator),
) -> StudySessionStartPayload:
    try:
        opened = sessions.open_session(user_id)
    except StorageFailureError as exc:
        raise _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "storage_failure", str(exc)) from exc
    return StudySessionStartPayload(
        session_id=opened.session_id,
        started_at=opened.started_at,
        message="Study session started.",
    )


@router.api_route(
    "/stop/{session_id}",
    methods=["POST", "PUT"],
    response_model=StudySessionClosurePayload,
    status_code=status.HTTP_200_OK,
)
def stop_study_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    sessions: StudySessionCoordinator = Depends(get_coordinator),
) -> StudySessionClosurePayload:
    try:
        outcome = sessions.close_session(user_id, session_id)
    except SessionNotFoundError as exc:
        raise _error(status.HTTP_404_NOT_FOUND, "session_not_found", str(exc)) from exc
    except LedgerMissingError as exc:
        logger.error("Study session %s closed without a ledger for %s", session_id, user_id)
        raise _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "ledger_missing", str(exc)) from exc
    except StorageFailureError as exc:
        raise _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "storage_failure", str(exc)) from exc
    return _closure_payload(outcome)


@router.get("/sessions", response_model=StudySessionListPayload, status_code=status.HTTP_200_OK)
def list_study_sessions(
    limit: int = Query(default=50, ge=1, le=MAX_LIST_LIMIT),
    user_id: str = Depends(get_current_user_id),
    sessions: StudySessionCoordinator = Depends(get_coordinator),
) -> StudySessionListPayload:
    try:
        records = sessions.list_sessions(user_id, limit=limit)
    except StorageFailureError as exc:
        raise _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "storage_failure", str(exc)) from exc
    return StudySessionListPayload(
        sessions=[
            StudySessionPayload(
                session_id=record.session_id,
                started_at=record.started_at,
                ended_at=record.ended_at,
                duration_seconds=record.duration_seconds,
                is_open=record.is_open,
            )
            for record in records
        ]
    )
