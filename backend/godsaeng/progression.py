"""Duration, experience and level rules for study sessions.

One full minute of study is worth one experience point and every level asks
for the same 100 points. ``exp_required`` is kept as a function of the level
so the rollover loop does not change if the curve ever does.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

NOISE_FLOOR_SECONDS = 5
SECONDS_PER_EXPERIENCE = 60
EXP_PER_LEVEL = 100


@dataclass(frozen=True)
class LevelUpResult:
    level: int
    experience: int
    levels_gained: int

    @property
    def level_up_occurred(self) -> bool:
        return self.levels_gained > 0


def as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; they were written as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def duration_seconds(started_at: datetime, ended_at: datetime) -> int:
    """Whole seconds between two timestamps, truncated toward zero and never negative."""
    elapsed = (as_utc(ended_at) - as_utc(started_at)).total_seconds()
    return max(0, int(elapsed))


def is_below_noise_floor(seconds: int) -> bool:
    return seconds < NOISE_FLOOR_SECONDS


def experience_for_duration(seconds: int) -> int:
    if seconds < 0:
        raise ValueError("Duration cannot be negative.")
    return seconds // SECONDS_PER_EXPERIENCE


def exp_required(level: int) -> int:
    return EXP_PER_LEVEL


def _required_for(level: int) -> int:
    required = exp_required(level)
    if required <= 0:
        raise ValueError(f"Experience requirement for level {level} must be positive.")
    return required


def resolve_level_up(level: int, experience: int, award: int) -> LevelUpResult:
    """Fold ``award`` into (level, experience), rolling over as many levels as it covers."""
    if award < 0:
        raise ValueError("Experience award cannot be negative.")
    if level < 0 or experience < 0:
        raise ValueError("Level and experience must be non-negative.")

    experience += award
    levels_gained = 0
    required = _required_for(level)
    while experience >= required:
        experience -= required
        level += 1
        levels_gained += 1
        required = _required_for(level)
    return LevelUpResult(level=level, experience=experience, levels_gained=levels_gained)


__all__ = [
    "EXP_PER_LEVEL",
    "LevelUpResult",
    "NOISE_FLOOR_SECONDS",
    "SECONDS_PER_EXPERIENCE",
    "as_utc",
    "duration_seconds",
    "exp_required",
    "experience_for_duration",
    "is_below_noise_floor",
    "resolve_level_up",
]
