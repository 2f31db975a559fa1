"""Character progression endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from .api_models import ProgressionPayload
from .identity import get_current_user_id
from .study_sessions import LedgerMissingError, StorageFailureError, StudySessionCoordinator
from .study_routes import get_coordinator

router = APIRouter(prefix="/api/character", tags=["character"])


@router.get("", response_model=ProgressionPayload, status_code=status.HTTP_200_OK)
def get_character(
    user_id: str = Depends(get_current_user_id),
    sessions: StudySessionCoordinator = Depends(get_coordinator),
) -> ProgressionPayload:
    try:
        snapshot = sessions.get_progression(user_id)
    except LedgerMissingError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "ledger_missing", "message": str(exc)},
        ) from exc
    except StorageFailureError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"code": "storage_failure", "message": str(exc)},
        ) from exc
    return ProgressionPayload(
        user_id=snapshot.user_id,
        level=snapshot.level,
        experience=snapshot.experience,
        exp_required=snapshot.exp_required,
        exp_to_next_level=snapshot.exp_required - snapshot.experience,
    )
