from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from godsaeng import progression
from godsaeng.progression import (
    EXP_PER_LEVEL,
    duration_seconds,
    exp_required,
    experience_for_duration,
    is_below_noise_floor,
    resolve_level_up,
)

START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def test_duration_truncates_partial_seconds() -> None:
    assert duration_seconds(START, START + timedelta(seconds=4, milliseconds=999)) == 4
    assert duration_seconds(START, START + timedelta(seconds=90, microseconds=500_000)) == 90


def test_duration_treats_naive_timestamps_as_utc() -> None:
    naive_start = START.replace(tzinfo=None)
    assert duration_seconds(naive_start, START + timedelta(minutes=2)) == 120


def test_duration_compares_across_offsets() -> None:
    kst = timezone(timedelta(hours=9))
    assert duration_seconds(START, START.astimezone(kst) + timedelta(seconds=30)) == 30


def test_duration_clamps_clock_skew_to_zero() -> None:
    assert duration_seconds(START, START - timedelta(seconds=3)) == 0


@pytest.mark.parametrize("seconds, expected", [(0, True), (4, True), (5, False), (60, False)])
def test_noise_floor(seconds: int, expected: bool) -> None:
    assert is_below_noise_floor(seconds) is expected


@pytest.mark.parametrize("seconds, expected", [(5, 0), (59, 0), (60, 1), (119, 1), (5400, 90)])
def test_experience_is_whole_minutes(seconds: int, expected: int) -> None:
    assert experience_for_duration(seconds) == expected


def test_experience_rejects_negative_duration() -> None:
    with pytest.raises(ValueError):
        experience_for_duration(-1)


def test_requirement_is_flat_across_levels() -> None:
    assert {exp_required(level) for level in (0, 1, 2, 50, 999)} == {EXP_PER_LEVEL}


def test_zero_award_is_noop() -> None:
    result = resolve_level_up(4, 37, 0)
    assert (result.level, result.experience) == (4, 37)
    assert result.level_up_occurred is False


def test_award_below_requirement_accumulates() -> None:
    result = resolve_level_up(1, 10, 89)
    assert (result.level, result.experience, result.levels_gained) == (1, 99, 0)


def test_exact_requirement_levels_up_once() -> None:
    result = resolve_level_up(1, 99, 1)
    assert (result.level, result.experience, result.levels_gained) == (2, 0, 1)
    assert result.level_up_occurred is True


def test_large_award_rolls_over_multiple_levels() -> None:
    result = resolve_level_up(1, 0, 250)
    assert (result.level, result.experience) == (3, 50)
    assert result.levels_gained == 2
    assert result.level_up_occurred is True


def test_single_award_matches_minute_by_minute_awards() -> None:
    level, experience = 2, 75
    for _ in range(437):
        step = resolve_level_up(level, experience, 1)
        level, experience = step.level, step.experience
    bulk = resolve_level_up(2, 75, 437)
    assert (bulk.level, bulk.experience) == (level, experience)
    assert bulk.experience < exp_required(bulk.level)


def test_rollover_uses_requirement_of_each_new_level(monkeypatch) -> None:
    monkeypatch.setattr(progression, "exp_required", lambda level: level * 10)
    result = resolve_level_up(1, 0, 65)
    # 10 (L1) + 20 (L2) + 30 (L3) = 60 consumed, 5 left at level 4
    assert (result.level, result.experience, result.levels_gained) == (4, 5, 3)


def test_non_positive_requirement_is_rejected(monkeypatch) -> None:
    monkeypatch.setattr(progression, "exp_required", lambda level: 0)
    with pytest.raises(ValueError):
        resolve_level_up(1, 0, 10)


@pytest.mark.parametrize("level, experience, award", [(1, 0, -1), (-1, 0, 5), (1, -3, 5)])
def test_invalid_inputs_are_rejected(level: int, experience: int, award: int) -> None:
    with pytest.raises(ValueError):
        resolve_level_up(level, experience, award)
