"""Pydantic payloads returned by the study and character endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class StudySessionPayload(BaseModel):
    session_id: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    is_open: bool


class StudySessionListPayload(BaseModel):
    sessions: List[StudySessionPayload] = Field(default_factory=list)


class StudySessionStartPayload(BaseModel):
    session_id: str
    started_at: datetime
    message: str


class StudySessionClosurePayload(BaseModel):
    status: Literal["closed", "below_threshold"]
    session_id: str
    duration_seconds: int
    duration_minutes: float
    experience_awarded: int = 0
    level: Optional[int] = None
    experience: Optional[int] = None
    level_up_occurred: bool = False
    message: str


class ProgressionPayload(BaseModel):
    user_id: str
    level: int
    experience: int
    exp_required: int
    exp_to_next_level: int


__all__ = [
    "ProgressionPayload",
    "StudySessionClosurePayload",
    "StudySessionListPayload",
    "StudySessionPayload",
    "StudySessionStartPayload",
]
