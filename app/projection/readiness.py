"""
Daily readiness composer — goal-aware readiness timeline.

Turns a projected fitness/fatigue trajectory plus a goal list into one
0-100 readiness score per day.

Pipeline
--------

1. **Base signal** — per day, a weighted blend of three state signals:

       fitness = CTL / peak CTL of the projection
       form    = 1 - max(0, target_TSB - TSB) / tolerance
       fatigue = 1 - max(0, ATL - CTL) / (peak CTL × overflow scale)

   ``form`` is one-sided: being fresher than the target never costs
   readiness, so the score is monotonic in balance for a fixed fitness.
   The target TSB and the weight of ``form`` follow the next upcoming
   goal (shorter events want more taper; form matters more close to the
   goal).  The blend is then mixed with the plan feasibility score.

2. **Event fatigue** — per day, the post-event penalty of every goal is
   computed and only the **largest** one is subtracted.  The single most
   limiting event dominates; penalties do not stack.

3. **Anchors** — each goal gets a peak window derived from its recovery
   profile::

       taper_days  = round(5 + intensity/100 × 3)
       peak_window = taper_days + round(full_recovery × 0.6)

   A goal *conflicts* when it falls within another goal's functional
   recovery window.  Conflicting goals are not forced to a peak.
   ``taper_days`` and ``peak_slope`` are reported for explanation only;
   the lift uses ``peak_window`` alone.

4. **Smoothing** — a fixed number of neighbour-averaging passes pulled
   towards the fatigue-adjusted values.  After each pass every
   non-conflicting goal day is lifted to the maximum of its window.

5. **Final anchoring** — one last lift, then clamp to [0, 100].

Design choices
--------------
1. **Pure** — no I/O, no clock, no module state.  Same input, same output.
2. **Max, not sum** — stacking penalties from several nearby events is a
   known simplification left out on purpose (see DESIGN.md).
3. **Natural fatigue on conflicts** — two marathons a day apart cannot
   both be peaks; the second one shows the first one's fatigue.
"""

from __future__ import annotations

import logging
from typing import NamedTuple, Optional, Sequence

from pydantic import BaseModel, Field

from app.projection.event_recovery import (
    compute_event_recovery_profile,
    compute_post_event_fatigue_penalty,
    round_half_up,
)
from app.schemas.goal import Goal
from app.schemas.projection import (
    EventRecoveryProfile,
    GoalAnchor,
    PointReadiness,
    ProjectionPoint,
    ReadinessTimeline,
)

logger = logging.getLogger(__name__)

# ======================================================================
# Configuration
# ======================================================================

# Event duration (hours, exclusive upper bound) -> optimal TSB on race day.
_OPTIMAL_TSB_BY_DURATION: list[tuple[float, float]] = [
    (0.5, 15.0),  # sprint
    (1.5, 12.0),  # 5K-10K
    (3.0, 8.0),  # half marathon
    (5.0, 5.0),  # marathon
]
_OPTIMAL_TSB_ULTRA = 3.0

# Form weight ramps from min (far from goal) to max (close to goal).
_FORM_WEIGHT_FULL_WITHIN_DAYS = 14
_FORM_WEIGHT_MIN_BEYOND_DAYS = 100


class ReadinessTimelineConfig(BaseModel):
    """Calibration for the daily readiness composer.

    Every field has a working default; callers override only what they
    calibrate.
    """

    target_tsb_default: float = Field(8.0, description="Target TSB when no upcoming goal defines one")
    form_tolerance: float = Field(20.0, gt=0.0, description="TSB shortfall that drives form signal to 0")
    fatigue_overflow_scale: float = Field(0.4, gt=0.0, description="ATL overflow (× peak CTL) that zeroes fatigue")

    form_weight_default: float = Field(0.5, ge=0.0, le=1.0)
    form_weight_min: float = Field(0.2, ge=0.0, le=1.0)
    form_weight_max: float = Field(0.5, ge=0.0, le=1.0)
    fitness_weight: float = Field(0.3, ge=0.0, le=1.0)
    fatigue_weight: float = Field(0.2, ge=0.0, le=1.0)
    event_aware_form: bool = Field(True, description="Derive target TSB and form weight from the next goal")

    feasibility_blend_weight: float = Field(0.15, ge=0.0, le=1.0)
    default_plan_readiness_score: float = Field(50.0, ge=0.0, le=100.0)

    smoothing_iterations: int = Field(60, ge=0, le=500)
    smoothing_lambda: float = Field(0.42, ge=0.0, le=5.0)


DEFAULT_TIMELINE_CONFIG = ReadinessTimelineConfig()


class _ResolvedGoal(NamedTuple):
    """A targeted goal located on the trajectory."""

    goal_index: int
    goal: Goal
    point_index: int
    profile: EventRecoveryProfile


# ======================================================================
# Small helpers
# ======================================================================


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _clamp_score(value: float) -> float:
    return max(0.0, min(100.0, value))


def compute_optimal_tsb(duration_hours: Optional[float], default: float = 8.0) -> float:
    """Optimal race-day TSB for an event of *duration_hours*.

    Short events want a deeper taper, long events a shallower one.
    """
    if duration_hours is None or duration_hours <= 0:
        return default
    for upper, tsb in _OPTIMAL_TSB_BY_DURATION:
        if duration_hours < upper:
            return tsb
    return _OPTIMAL_TSB_ULTRA


def compute_dynamic_form_weight(
    days_until_goal: int,
    config: Optional[ReadinessTimelineConfig] = None,
) -> float:
    """Weight of the form signal given the distance to the next goal.

    Full weight within two weeks, minimum beyond ~14 weeks, linear in
    between.
    """
    cfg = config or DEFAULT_TIMELINE_CONFIG
    if days_until_goal <= _FORM_WEIGHT_FULL_WITHIN_DAYS:
        return cfg.form_weight_max
    if days_until_goal >= _FORM_WEIGHT_MIN_BEYOND_DAYS:
        return cfg.form_weight_min
    progress = (_FORM_WEIGHT_MIN_BEYOND_DAYS - days_until_goal) / (
        _FORM_WEIGHT_MIN_BEYOND_DAYS - _FORM_WEIGHT_FULL_WITHIN_DAYS
    )
    return cfg.form_weight_min + (cfg.form_weight_max - cfg.form_weight_min) * progress


def _resolve_point_index(points: Sequence[ProjectionPoint], goal: Goal) -> Optional[int]:
    """Index of the goal day, or ``None`` if outside the trajectory span.

    A goal inside the span whose date is missing (gap in the trajectory)
    resolves to the nearest day; ties go to the earlier day.
    """
    if not points:
        return None
    if goal.target_date < points[0].date or goal.target_date > points[-1].date:
        return None

    nearest_index = 0
    nearest_distance: Optional[int] = None
    for i, point in enumerate(points):
        distance = abs((point.date - goal.target_date).days)
        if distance == 0:
            return i
        if nearest_distance is None or distance < nearest_distance:
            nearest_distance = distance
            nearest_index = i
    return nearest_index


def _resolve_goals(
    points: Sequence[ProjectionPoint],
    goals: Sequence[Goal],
) -> tuple[list[_ResolvedGoal], list[int]]:
    """Locate targeted goals on the trajectory.

    Returns:
        ``(resolved, ignored_indexes)`` — resolved goals sorted by day,
        and the indexes of goals dated outside the trajectory.
    """
    resolved: list[_ResolvedGoal] = []
    ignored: list[int] = []

    for goal_index, goal in enumerate(goals):
        point_index = _resolve_point_index(points, goal)
        if point_index is None:
            logger.debug("Goal %d (%s) outside projection span, ignored", goal_index, goal.target_date)
            ignored.append(goal_index)
            continue
        primary = goal.primary_target
        if primary is None:
            # Plan marker only: no penalty, no anchor.
            continue
        at_goal = points[point_index]
        profile = compute_event_recovery_profile(primary, at_goal.fitness, at_goal.fatigue)
        resolved.append(_ResolvedGoal(goal_index, goal, point_index, profile))

    resolved.sort(key=lambda r: (r.point_index, r.goal_index))
    return resolved, ignored


# ======================================================================
# Step 1: base signal
# ======================================================================


def _upcoming_goal_context(
    points: Sequence[ProjectionPoint],
    resolved: Sequence[_ResolvedGoal],
) -> list[tuple[Optional[float], Optional[int]]]:
    """Per point: ``(duration_hours, days_until)`` of the next goal on or after it."""
    context: list[tuple[Optional[float], Optional[int]]] = []
    cursor = 0
    ordered = sorted(resolved, key=lambda r: (r.goal.target_date, r.goal_index))
    for point in points:
        while cursor < len(ordered) and ordered[cursor].goal.target_date < point.date:
            cursor += 1
        if cursor >= len(ordered):
            context.append((None, None))
            continue
        upcoming = ordered[cursor].goal
        days_until = (upcoming.target_date - point.date).days
        context.append((upcoming.primary_target.duration_hours, days_until))
    return context


def _base_scores(
    points: Sequence[ProjectionPoint],
    resolved: Sequence[_ResolvedGoal],
    plan_readiness_score: Optional[float],
    cfg: ReadinessTimelineConfig,
) -> list[float]:
    if not points:
        return []

    peak_ctl = max(1.0, max(max(0.0, p.fitness) for p in points))
    plan_score = cfg.default_plan_readiness_score if plan_readiness_score is None else plan_readiness_score
    feasibility_signal = _clamp01(plan_score / 100.0)

    if cfg.event_aware_form:
        context = _upcoming_goal_context(points, resolved)
    else:
        context = [(None, None)] * len(points)

    scores: list[float] = []
    for point, (duration_hours, days_until) in zip(points, context):
        ctl = max(0.0, point.fitness)
        atl = max(0.0, point.fatigue)
        tsb = ctl - atl

        if days_until is None:
            target_tsb = cfg.target_tsb_default
            form_weight = cfg.form_weight_default
        else:
            target_tsb = compute_optimal_tsb(duration_hours, cfg.target_tsb_default)
            form_weight = compute_dynamic_form_weight(days_until, cfg)

        fitness_signal = _clamp01(ctl / peak_ctl)
        form_signal = _clamp01(1.0 - max(0.0, target_tsb - tsb) / cfg.form_tolerance)
        fatigue_overflow = max(0.0, atl - ctl)
        fatigue_signal = _clamp01(1.0 - fatigue_overflow / max(1.0, peak_ctl * cfg.fatigue_overflow_scale))

        total_weight = form_weight + cfg.fitness_weight + cfg.fatigue_weight
        if total_weight <= 0:
            readiness_signal = 0.0
        else:
            readiness_signal = (
                form_signal * form_weight
                + fitness_signal * cfg.fitness_weight
                + fatigue_signal * cfg.fatigue_weight
            ) / total_weight

        blended = (
            readiness_signal * (1.0 - cfg.feasibility_blend_weight)
            + feasibility_signal * cfg.feasibility_blend_weight
        )
        scores.append(_clamp_score(blended * 100.0))

    return scores


def compute_base_readiness_scores(
    points: Sequence[ProjectionPoint],
    goals: Optional[Sequence[Goal]] = None,
    plan_readiness_score: Optional[float] = None,
    config: Optional[ReadinessTimelineConfig] = None,
) -> list[float]:
    """State-only readiness (0-100) per point, before any event effect."""
    cfg = config or DEFAULT_TIMELINE_CONFIG
    resolved, _ = _resolve_goals(points, goals or [])
    return _base_scores(points, resolved, plan_readiness_score, cfg)


# ======================================================================
# Step 2: post-event fatigue
# ======================================================================


def _limiting_penalties(
    points: Sequence[ProjectionPoint],
    resolved: Sequence[_ResolvedGoal],
) -> list[tuple[float, Optional[int]]]:
    """Per point: ``(max penalty, goal index responsible)``."""
    penalties: list[tuple[float, Optional[int]]] = []
    for point in points:
        worst = 0.0
        worst_goal: Optional[int] = None
        for event in resolved:
            at_goal = points[event.point_index]
            penalty = compute_post_event_fatigue_penalty(
                point, event.goal, at_goal.fitness, at_goal.fatigue, profile=event.profile,
            )
            if penalty > worst:
                worst = penalty
                worst_goal = event.goal_index
        penalties.append((worst, worst_goal))
    return penalties


# ======================================================================
# Step 3: anchors and conflicts
# ======================================================================


def _derive_anchors(
    points: Sequence[ProjectionPoint],
    resolved: Sequence[_ResolvedGoal],
) -> list[GoalAnchor]:
    anchors: list[GoalAnchor] = []
    for event in resolved:
        profile = event.profile
        intensity_factor = profile.fatigue_intensity / 100.0
        taper_days = round_half_up(5 + intensity_factor * 3)
        peak_window = taper_days + round_half_up(profile.recovery_days_full * 0.6)

        # Conflicting: this goal sits inside another goal's functional window.
        conflicts = [
            other.goal_index
            for other in resolved
            if other.goal_index != event.goal_index
            and abs((other.goal.target_date - event.goal.target_date).days)
            <= other.profile.recovery_days_functional
        ]
        if conflicts:
            logger.debug(
                "Goal %d (%s) conflicts with goals %s, natural fatigue allowed",
                event.goal_index, event.goal.target_date, conflicts,
            )

        anchors.append(GoalAnchor(
            goal_index=event.goal_index,
            point_index=event.point_index,
            taper_days=taper_days,
            peak_window=peak_window,
            peak_slope=round(1.1 + intensity_factor * 0.7, 3),
            allow_natural_fatigue=bool(conflicts),
            conflicting_goal_indexes=sorted(conflicts),
        ))
    return anchors


def derive_goal_anchors(
    points: Sequence[ProjectionPoint],
    goals: Sequence[Goal],
) -> list[GoalAnchor]:
    """Anchors for every targeted goal inside the trajectory, in day order."""
    resolved, _ = _resolve_goals(points, goals)
    return _derive_anchors(points, resolved)


# ======================================================================
# Steps 4-5: smoothing with conditional anchoring
# ======================================================================


def _smooth_pass(values: list[float], prior: Sequence[float], smoothing_lambda: float) -> list[float]:
    smoothed = list(values)
    for i in range(1, len(values) - 1):
        updated = (prior[i] + smoothing_lambda * values[i - 1] + smoothing_lambda * values[i + 1]) / (
            1.0 + 2.0 * smoothing_lambda
        )
        smoothed[i] = _clamp_score(updated)
    return smoothed


def _lift_anchors(values: list[float], anchors: Sequence[GoalAnchor]) -> None:
    """Raise each non-conflicting goal day to the maximum of its window."""
    last = len(values) - 1
    for anchor in anchors:
        if anchor.allow_natural_fatigue:
            continue
        start = max(0, anchor.point_index - anchor.peak_window)
        end = min(last, anchor.point_index + anchor.peak_window)
        local_max = max(values[start:end + 1])
        values[anchor.point_index] = max(values[anchor.point_index], local_max)


# ======================================================================
# Main entry points
# ======================================================================


def compose_readiness_timeline(
    points: Sequence[ProjectionPoint],
    goals: Optional[Sequence[Goal]] = None,
    plan_readiness_score: Optional[float] = None,
    config: Optional[ReadinessTimelineConfig] = None,
) -> ReadinessTimeline:
    """Compose the goal-aware readiness timeline.

    Args:
        points: Daily trajectory, strictly increasing dates.
        goals: Goals of the plan.  Goals outside the trajectory are
            ignored; goals without targets are plan markers only.
        plan_readiness_score: Plan feasibility (0-100) blended into the
            base signal.  Defaults to the config's neutral value.
        config: Optional :class:`ReadinessTimelineConfig` override.

    Returns:
        :class:`ReadinessTimeline` with one score per point, a per-day
        breakdown, and the derived anchors.
    """
    cfg = config or DEFAULT_TIMELINE_CONFIG
    goal_list = list(goals or [])

    if not points:
        return ReadinessTimeline(scores=[], points=[], anchors=[],
                                 ignored_goal_indexes=list(range(len(goal_list))))

    resolved, ignored = _resolve_goals(points, goal_list)

    base = _base_scores(points, resolved, plan_readiness_score, cfg)
    penalties = _limiting_penalties(points, resolved)
    adjusted = [_clamp_score(score - penalty) for score, (penalty, _) in zip(base, penalties)]

    anchors = _derive_anchors(points, resolved)

    values = list(adjusted)
    if resolved:
        for _ in range(cfg.smoothing_iterations):
            values = _smooth_pass(values, adjusted, cfg.smoothing_lambda)
            _lift_anchors(values, anchors)
        _lift_anchors(values, anchors)

    scores = [round(_clamp_score(v), 2) for v in values]

    breakdown = [
        PointReadiness(
            date=point.date,
            base_score=round(base[i], 2),
            fatigue_penalty=round(penalties[i][0], 2),
            limiting_goal_index=penalties[i][1],
            score=scores[i],
        )
        for i, point in enumerate(points)
    ]

    return ReadinessTimeline(scores=scores, points=breakdown, anchors=anchors, ignored_goal_indexes=ignored)


def compute_projection_point_readiness_scores(
    points: Sequence[ProjectionPoint],
    goals: Optional[Sequence[Goal]] = None,
    plan_readiness_score: Optional[float] = None,
    config: Optional[ReadinessTimelineConfig] = None,
) -> list[float]:
    """One readiness score (0-100) per point.  See :func:`compose_readiness_timeline`."""
    return compose_readiness_timeline(points, goals, plan_readiness_score, config).scores
