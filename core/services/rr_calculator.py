"""RR (relative rating) score calculation for workout and rest-day entries.

The RR value normalises a day's effort to the range 0.0-2.0, where 1.0 is
the minimum a workout needs to count. Thresholds relax for older members.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

MAX_RR = 2.0
MIN_WORKOUT_RR = 1.0
REST_DAY_RR = 1.0

RUN_DISTANCE_KM = 4
CYCLING_DISTANCE_KM = 10
GOLF_HOLES = 9


@dataclass(frozen=True)
class AgeThresholds:
    base_duration: int
    min_steps: int
    max_steps: int


DEFAULT_THRESHOLDS = AgeThresholds(base_duration=45, min_steps=10000, max_steps=20000)
OVER_65_THRESHOLDS = AgeThresholds(base_duration=30, min_steps=5000, max_steps=10000)
OVER_75_THRESHOLDS = AgeThresholds(base_duration=30, min_steps=3000, max_steps=6000)


@dataclass(frozen=True)
class WorkoutMetrics:
    duration: Optional[float] = None  # minutes
    distance: Optional[float] = None  # km
    steps: Optional[int] = None
    holes: Optional[int] = None


def calculate_age(date_of_birth: date, today: Optional[date] = None) -> int:
    """Whole years between date_of_birth and today.

    Uses the calendar-year difference, minus one when the birthday has not
    happened yet this year.

    Example:
        >>> calculate_age(date(1950, 6, 15), date(2026, 6, 14))
        75
    """
    if today is None:
        today = date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def thresholds_for_age(age: Optional[int]) -> AgeThresholds:
    """Pick the duration/step thresholds for a member's age (None = unknown)."""
    if age is None:
        return DEFAULT_THRESHOLDS
    if age > 75:
        return OVER_75_THRESHOLDS
    if age > 65:
        return OVER_65_THRESHOLDS
    return DEFAULT_THRESHOLDS


def _clamp(value: float) -> float:
    return max(0.0, min(value, MAX_RR))


def _duration_or_distance(metrics: WorkoutMetrics, base_duration: int, distance_km: int) -> float:
    by_duration = metrics.duration / base_duration if metrics.duration is not None else 0.0
    by_distance = metrics.distance / distance_km if metrics.distance is not None else 0.0
    return max(by_duration, by_distance)


def compute_rr_value(
    kind: str,
    workout_type: Optional[str] = None,
    metrics: Optional[WorkoutMetrics] = None,
    age: Optional[int] = None,
) -> float:
    """Compute the RR value of a submission. Never raises.

    Args:
        kind: 'workout' or 'rest'
        workout_type: workout subtype such as 'steps', 'golf', 'run', 'cycling'
        metrics: raw metrics; any of them may be missing
        age: member age in years, None when unknown

    Returns:
        Float in [0.0, 2.0]

    Example:
        >>> compute_rr_value('workout', 'steps', WorkoutMetrics(steps=12000))
        1.2
        >>> compute_rr_value('workout', 'golf', WorkoutMetrics(holes=18))
        2.0
    """
    if kind == 'rest':
        return REST_DAY_RR

    metrics = metrics or WorkoutMetrics()
    thresholds = thresholds_for_age(age)

    if workout_type == 'steps' and metrics.steps is not None:
        if metrics.steps < thresholds.min_steps:
            return 0.0
        capped = min(metrics.steps, thresholds.max_steps)
        span = thresholds.max_steps - thresholds.min_steps
        return _clamp(1 + (capped - thresholds.min_steps) / span)

    if workout_type == 'golf' and metrics.holes is not None:
        return _clamp(metrics.holes / GOLF_HOLES)

    if workout_type in ('run', 'cardio'):
        return _clamp(_duration_or_distance(metrics, thresholds.base_duration, RUN_DISTANCE_KM))

    if workout_type == 'cycling':
        return _clamp(_duration_or_distance(metrics, thresholds.base_duration, CYCLING_DISTANCE_KM))

    if metrics.duration is not None:
        # gym, yoga, swimming, strength, hiit, sports and unknown subtypes
        return _clamp(metrics.duration / thresholds.base_duration)

    return 1.0


def is_eligible_workout(rr_value: Optional[float]) -> bool:
    """Workouts are only accepted at or above the minimum RR."""
    return rr_value is not None and rr_value >= MIN_WORKOUT_RR
