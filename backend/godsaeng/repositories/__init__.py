"""Database repositories for study sessions and progression ledgers."""

from .progression_ledgers import ProgressionLedgerRepository, progression_ledgers
from .study_sessions import StudySessionRepository, study_sessions

__all__ = [
    "ProgressionLedgerRepository",
    "StudySessionRepository",
    "progression_ledgers",
    "study_sessions",
]
