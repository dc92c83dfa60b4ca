"""Pydantic schemas for request/response validation."""

from app.schemas.goal import ActivityCategory, Goal, GoalTarget, TargetType
from app.schemas.projection import (
    EventRecoveryProfile,
    GoalAnchor,
    GoalAssessment,
    PointReadiness,
    ProjectionPoint,
    ReadinessTimeline,
)

__all__ = [
    "ActivityCategory",
    "Goal",
    "GoalTarget",
    "TargetType",
    "EventRecoveryProfile",
    "GoalAnchor",
    "GoalAssessment",
    "PointReadiness",
    "ProjectionPoint",
    "ReadinessTimeline",
]
