"""Projection core algorithms — event recovery, daily readiness, goal readiness."""

from app.projection.event_recovery import (
    compute_event_recovery_profile,
    compute_post_event_fatigue_penalty,
)
from app.projection.goal_readiness import (
    GoalReadinessConfig,
    assess_goals,
    compute_goal_readiness_score,
)
from app.projection.readiness import (
    ReadinessTimelineConfig,
    compose_readiness_timeline,
    compute_projection_point_readiness_scores,
)

__all__ = [
    "GoalReadinessConfig",
    "ReadinessTimelineConfig",
    "assess_goals",
    "compose_readiness_timeline",
    "compute_event_recovery_profile",
    "compute_goal_readiness_score",
    "compute_post_event_fatigue_penalty",
    "compute_projection_point_readiness_scores",
]
