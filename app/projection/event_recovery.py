"""
Event recovery — recovery profile and post-event fatigue penalty.

Every goal target implies a recovery cost once the event is over.  This
module derives that cost from the target itself (duration, type,
activity) rather than from a per-distance lookup table, so new event
types only need an entry in the intensity tiers.

Recovery profile (``race_performance``)
---------------------------------------

    hours        = target_time_s / 3600
    base_days    = clamp(hours × 3.5, 2, 28)
    intensity    = duration tier × activity factor          (0-100)
    full         = round(base_days × (0.7 + intensity/100 × 0.3))
    functional   = round(base_days × 0.4)
    spike_factor = min(2.5, 1 + hours × 0.15)

Examples (run):

    5K        (0.33h, 95):  2 days full, 1 day functional
    Half      (1.5h,  90):  5 days full, 2 days functional
    Marathon  (3.5h,  85): 12 days full, 5 days functional
    100-mile  (24h,   75): 26 days full, 11 days functional

Threshold tests recover in ``3 + hours × 2`` days; heart-rate tests use a
fixed short profile.  Anything unrecognised gets a conservative default.

Post-event penalty
------------------

After the event the penalty decays exponentially with a half-life of one
third of the full recovery time::

    decay   = 0.5 ^ (days_after / (full / 3))
    penalty = min(60, (intensity × 0.5 + overload) × decay)

where ``overload = max(0, (ATL / max(1, CTL) - 1) × 30)`` is read from the
*current* day.  Days on or before the event are never penalised here;
pre-event tapering is handled by peak anchoring in the composer.
"""

from __future__ import annotations

import math
from typing import Optional

from app.schemas.goal import ActivityCategory, Goal, GoalTarget, TargetType
from app.schemas.projection import EventRecoveryProfile, ProjectionPoint

# ======================================================================
# Configuration
# ======================================================================

MAX_RECOVERY_DAYS = 28
MAX_FATIGUE_PENALTY = 60.0

# (min duration hours, exclusive) -> base intensity.  First match wins.
_INTENSITY_TIERS: list[tuple[float, float]] = [
    (24.0, 70.0),  # multi-day
    (12.0, 75.0),
    (6.0, 80.0),  # ultra
    (3.0, 85.0),  # marathon-ish
    (1.0, 90.0),
]
_SHORT_EVENT_INTENSITY = 95.0

_ACTIVITY_FACTORS: dict[ActivityCategory, float] = {
    ActivityCategory.RUN: 1.0,
    ActivityCategory.BIKE: 0.9,
    ActivityCategory.SWIM: 0.95,
    ActivityCategory.OTHER: 0.85,
}

DEFAULT_RECOVERY_PROFILE = EventRecoveryProfile(
    recovery_days_full=7,
    recovery_days_functional=3,
    fatigue_intensity=75.0,
    fatigue_spike_factor=1.2,
)

_HR_THRESHOLD_PROFILE = EventRecoveryProfile(
    recovery_days_full=3,
    recovery_days_functional=1,
    fatigue_intensity=65.0,
    fatigue_spike_factor=1.1,
)


# ======================================================================
# Helpers
# ======================================================================


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    Python's ``round`` is banker's rounding (``round(2.5) == 2``); recovery
    day counts must round 2.5 up.
    """
    return int(math.floor(value + 0.5))


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# ======================================================================
# Recovery profile
# ======================================================================


def estimate_race_intensity(duration_hours: float, activity: ActivityCategory) -> int:
    """Estimate race intensity (0-100) from duration and activity.

    Shorter races are run closer to maximal effort; non-running sports
    carry less impact and are scaled down.
    """
    base = _SHORT_EVENT_INTENSITY
    for threshold, intensity in _INTENSITY_TIERS:
        if duration_hours > threshold:
            base = intensity
            break
    factor = _ACTIVITY_FACTORS.get(activity, _ACTIVITY_FACTORS[ActivityCategory.OTHER])
    return round_half_up(base * factor)


def _race_base_days(hours: float) -> float:
    return _clamp(hours * 3.5, 2.0, float(MAX_RECOVERY_DAYS))


def _race_full_days(hours: float, activity: ActivityCategory) -> int:
    """Full recovery days for a race of *hours*.

    Crossing into a lower-intensity tier never shortens recovery: the
    value reached at each passed tier boundary acts as a floor.
    """
    intensity = estimate_race_intensity(hours, activity)
    full = round_half_up(_race_base_days(hours) * (0.7 + intensity / 100.0 * 0.3))
    for threshold, _ in _INTENSITY_TIERS:
        if hours > threshold:
            boundary_intensity = estimate_race_intensity(threshold, activity)
            floor_days = round_half_up(_race_base_days(threshold) * (0.7 + boundary_intensity / 100.0 * 0.3))
            full = max(full, floor_days)
    return full


def _race_profile(target: GoalTarget) -> EventRecoveryProfile:
    hours = target.target_time_s / 3600.0
    base_days = _race_base_days(hours)
    intensity = estimate_race_intensity(hours, target.activity_category)

    full = _race_full_days(hours, target.activity_category)
    functional = round_half_up(base_days * 0.4)

    return EventRecoveryProfile(
        recovery_days_full=min(MAX_RECOVERY_DAYS, full),
        recovery_days_functional=functional,
        fatigue_intensity=float(intensity),
        fatigue_spike_factor=min(2.5, 1.0 + hours * 0.15),
    )


def _threshold_profile(target: GoalTarget) -> EventRecoveryProfile:
    base_days = 3.0 + (target.test_duration_s / 3600.0) * 2.0
    return EventRecoveryProfile(
        recovery_days_full=min(MAX_RECOVERY_DAYS, round_half_up(base_days)),
        recovery_days_functional=round_half_up(min(base_days, MAX_RECOVERY_DAYS) * 0.35),
        fatigue_intensity=75.0,
        fatigue_spike_factor=1.2,
    )


def compute_event_recovery_profile(
    target: GoalTarget,
    projected_fitness: float = 0.0,
    projected_fatigue: float = 0.0,
) -> EventRecoveryProfile:
    """Compute the recovery profile of one goal target.

    Total function: never raises.  Targets with an unknown type, or a
    known type missing the duration it needs, get
    :data:`DEFAULT_RECOVERY_PROFILE`.

    Args:
        target: The goal's primary target.
        projected_fitness: Projected CTL on the event day.
        projected_fatigue: Projected ATL on the event day.  Neither value
            changes the current profile; both are accepted so callers pass
            the full event context.

    Returns:
        A fresh :class:`EventRecoveryProfile`.
    """
    target_type = target.target_type

    if target_type == TargetType.RACE_PERFORMANCE:
        if target.target_time_s:
            return _race_profile(target)
        return DEFAULT_RECOVERY_PROFILE.model_copy()

    if target_type in (TargetType.PACE_THRESHOLD, TargetType.POWER_THRESHOLD):
        if target.test_duration_s:
            return _threshold_profile(target)
        return DEFAULT_RECOVERY_PROFILE.model_copy()

    if target_type == TargetType.HR_THRESHOLD:
        return _HR_THRESHOLD_PROFILE.model_copy()

    return DEFAULT_RECOVERY_PROFILE.model_copy()


# ======================================================================
# Post-event fatigue penalty
# ======================================================================


def compute_post_event_fatigue_penalty(
    current_point: ProjectionPoint,
    goal: Goal,
    projected_fitness: float = 0.0,
    projected_fatigue: float = 0.0,
    profile: Optional[EventRecoveryProfile] = None,
) -> float:
    """Readiness penalty (0-60) carried into *current_point* by *goal*.

    Args:
        current_point: The day being scored.
        goal: The event whose after-effects are measured.
        projected_fitness: Projected CTL on the goal day.
        projected_fatigue: Projected ATL on the goal day.
        profile: Precomputed recovery profile for the goal's primary
            target.  Computed here when omitted.

    Returns:
        ``0.0`` on or before the goal date, or when the goal has no
        target; otherwise the decayed penalty, capped at 60.
    """
    days_after = (current_point.date - goal.target_date).days
    if days_after <= 0:
        return 0.0

    primary = goal.primary_target
    if primary is None:
        return 0.0

    if profile is None:
        profile = compute_event_recovery_profile(primary, projected_fitness, projected_fatigue)

    half_life = max(1, profile.recovery_days_full) / 3.0
    decay = math.pow(0.5, days_after / half_life)

    fitness = max(0.0, current_point.fitness)
    fatigue = max(0.0, current_point.fatigue)
    atl_ratio = fatigue / max(1.0, fitness)
    overload_penalty = max(0.0, (atl_ratio - 1.0) * 30.0)

    base_penalty = profile.fatigue_intensity * 0.5

    return min(MAX_FATIGUE_PENALTY, (base_penalty + overload_penalty) * decay)
