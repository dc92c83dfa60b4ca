"""
Goal readiness — one feasibility score per goal.

Where the daily composer answers "how ready am I on this day?", goal
readiness answers "how likely is this goal?".  It blends three inputs,
all on a 0-100 scale:

- **state** — composed daily readiness on the goal day,
- **attainment** — projected fitness relative to the fitness the target
  demands,
- **alignment loss** — how far the plan structure is from what the goal
  needs (supplied by the plan builder; 0 = perfectly aligned).

Formula::

    blend   = state × 0.55 + 100 × (attainment/100)^exp × 0.45
    synergy = 25 × (state/100)² × (attainment/100)²
    score   = clamp(blend + synergy - alignment_loss × 0.2, 0, 100)

The synergy term is bounded by its multiplier and grows fastest when both
inputs are high together: one strong metric cannot buy it alone.

There is **no floor**.  High state, high attainment and low alignment loss
produce a high score, never a hard-coded one.

Required fitness
----------------

Races demand CTL on a log scale of distance, plus a capped boost for
speeds above an activity/distance baseline::

    required = 28 + 13 × ln(1 + km) + min(24, max(0, (kph - baseline) × 3.2))

Threshold tests use fixed demands (pace 56, power 60, heart rate 54).
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

from pydantic import BaseModel, Field

from app.projection.event_recovery import compute_event_recovery_profile
from app.projection.readiness import (
    ReadinessTimelineConfig,
    compose_readiness_timeline,
)
from app.schemas.goal import ActivityCategory, Goal, GoalTarget, TargetType
from app.schemas.projection import GoalAssessment, ProjectionPoint

logger = logging.getLogger(__name__)

# ======================================================================
# Configuration
# ======================================================================

_DISTANCE_CTL_BASE = 28.0
_DISTANCE_CTL_SCALE = 13.0
_PACE_BOOST_MULTIPLIER = 3.2
_PACE_BOOST_CAP = 24.0

# (distance km, exclusive upper bound) -> baseline speed (km/h).
_PACE_BASELINES: dict[ActivityCategory, list[tuple[float, float]]] = {
    ActivityCategory.RUN: [(10.0, 12.0), (25.0, 10.0), (50.0, 9.0), (float("inf"), 8.0)],
    ActivityCategory.BIKE: [(40.0, 35.0), (100.0, 32.0), (160.0, 28.0), (float("inf"), 25.0)],
    ActivityCategory.SWIM: [(float("inf"), 3.5)],
}
_DEFAULT_PACE_BASELINE = 10.0

_THRESHOLD_CTL = {
    TargetType.PACE_THRESHOLD.value: 56.0,
    TargetType.POWER_THRESHOLD.value: 60.0,
    TargetType.HR_THRESHOLD.value: 54.0,
}
_DEFAULT_REQUIRED_CTL = 56.0


class GoalReadinessConfig(BaseModel):
    """Calibration for the goal readiness score."""

    state_weight: float = Field(0.55, ge=0.0, le=1.0, description="Weight of physiological state")
    attainment_weight: float = Field(0.45, ge=0.0, le=1.0, description="Weight of target attainment")
    attainment_exponent: float = Field(1.0, ge=1.0, le=2.0, description="1.0 = linear, 2.0 = quadratic penalty")
    synergy_multiplier: float = Field(25.0, ge=0.0, le=50.0, description="Maximum bonus for joint strength")
    alignment_penalty_weight: float = Field(0.2, ge=0.0, le=1.0)


DEFAULT_GOAL_READINESS_CONFIG = GoalReadinessConfig()


# ======================================================================
# Core score
# ======================================================================


def compute_goal_readiness_score(
    state_readiness: float,
    target_attainment: float,
    alignment_loss: float,
    config: Optional[GoalReadinessConfig] = None,
) -> float:
    """Blend state, attainment and alignment loss into a 0-100 score.

    Args:
        state_readiness: Physiological state score (0-100).
        target_attainment: Target attainment score (0-100).
        alignment_loss: Plan/goal misalignment (0-100, 0 = aligned).
        config: Optional :class:`GoalReadinessConfig` override.

    Returns:
        ``clamp(blend + synergy - alignment_penalty, 0, 100)``, unrounded.
    """
    cfg = config or DEFAULT_GOAL_READINESS_CONFIG

    state = max(0.0, min(100.0, state_readiness))
    attainment = max(0.0, min(100.0, target_attainment))
    loss = max(0.0, min(100.0, alignment_loss))

    state_ratio = state / 100.0
    attainment_ratio = attainment / 100.0

    blend = state * cfg.state_weight + 100.0 * attainment_ratio ** cfg.attainment_exponent * cfg.attainment_weight
    synergy = cfg.synergy_multiplier * state_ratio ** 2 * attainment_ratio ** 2
    alignment_penalty = loss * cfg.alignment_penalty_weight

    return max(0.0, min(100.0, blend + synergy - alignment_penalty))


# ======================================================================
# Target demand / attainment
# ======================================================================


def _pace_baseline(activity: ActivityCategory, distance_km: float) -> float:
    for upper, baseline in _PACE_BASELINES.get(activity, []):
        if distance_km < upper:
            return baseline
    return _DEFAULT_PACE_BASELINE


def estimate_required_fitness(target: GoalTarget) -> float:
    """CTL the target demands on the day."""
    if target.target_type == TargetType.RACE_PERFORMANCE:
        if not target.distance_m:
            return _DEFAULT_REQUIRED_CTL
        distance_km = target.distance_m / 1000.0
        required = _DISTANCE_CTL_BASE + _DISTANCE_CTL_SCALE * math.log(1.0 + distance_km)
        if target.target_time_s:
            speed_kph = distance_km / (target.target_time_s / 3600.0)
            baseline = _pace_baseline(target.activity_category, distance_km)
            boost = (speed_kph - baseline) * _PACE_BOOST_MULTIPLIER
            required += min(_PACE_BOOST_CAP, max(0.0, boost))
        return required

    for target_type, ctl in _THRESHOLD_CTL.items():
        if target.target_type == target_type:
            return ctl
    return _DEFAULT_REQUIRED_CTL


def compute_target_attainment_score(projected_fitness: float, required_fitness: float) -> float:
    """Projected CTL as a percentage of required CTL, clamped to 0-100."""
    return max(0.0, min(100.0, 100.0 * max(0.0, projected_fitness) / max(1.0, required_fitness)))


# ======================================================================
# Goal assessments
# ======================================================================


def assess_goals(
    points: Sequence[ProjectionPoint],
    goals: Sequence[Goal],
    alignment_losses: Optional[Sequence[float]] = None,
    plan_readiness_score: Optional[float] = None,
    timeline_config: Optional[ReadinessTimelineConfig] = None,
    config: Optional[GoalReadinessConfig] = None,
) -> list[GoalAssessment]:
    """Assess every targeted goal inside the trajectory.

    Args:
        points: Daily trajectory.
        goals: Plan goals.
        alignment_losses: Optional per-goal alignment loss, aligned with
            *goals*.  Missing entries count as 0.
        plan_readiness_score: Passed through to the daily composer.
        timeline_config: Daily composer calibration.
        config: Goal readiness calibration.

    Returns:
        One :class:`GoalAssessment` per goal with at least one target and
        a date inside the trajectory, in goal-list order.
    """
    timeline = compose_readiness_timeline(points, goals, plan_readiness_score, timeline_config)
    anchors_by_goal = {anchor.goal_index: anchor for anchor in timeline.anchors}
    losses = list(alignment_losses or [])

    assessments: list[GoalAssessment] = []
    for goal_index, goal in enumerate(goals):
        anchor = anchors_by_goal.get(goal_index)
        if anchor is None:
            continue

        primary = goal.primary_target
        at_goal = points[anchor.point_index]
        state = timeline.scores[anchor.point_index]
        required = estimate_required_fitness(primary)
        attainment = compute_target_attainment_score(at_goal.fitness, required)
        loss = max(0.0, min(100.0, losses[goal_index])) if goal_index < len(losses) else 0.0

        assessments.append(GoalAssessment(
            goal_index=goal_index,
            goal_id=goal.goal_id,
            target_date=goal.target_date,
            state_readiness_score=state,
            target_attainment_score=round(attainment, 2),
            alignment_loss=loss,
            goal_readiness_score=compute_goal_readiness_score(state, attainment, loss, config),
            required_fitness=round(required, 1),
            projected_fitness=round(at_goal.fitness, 1),
            recovery_profile=compute_event_recovery_profile(primary, at_goal.fitness, at_goal.fatigue),
            conflicting_goal_indexes=anchor.conflicting_goal_indexes,
        ))
        logger.debug("Goal %d assessed: readiness %.1f", goal_index, assessments[-1].goal_readiness_score)

    return assessments
