"""
Request bodies for the projection endpoints.

Trajectories must be sorted with strictly increasing dates; this is the
producer's contract, checked here so that a malformed request fails with
a 422 instead of producing a misaligned timeline.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from app.projection.goal_readiness import GoalReadinessConfig
from app.projection.readiness import ReadinessTimelineConfig
from app.schemas.goal import Goal
from app.schemas.projection import ProjectionPoint


class ReadinessTimelineRequest(BaseModel):
    """Trajectory + goals for the daily readiness composer."""

    points: list[ProjectionPoint] = Field(..., description="Daily trajectory, strictly increasing dates")
    goals: list[Goal] = Field(default_factory=list)
    plan_readiness_score: Optional[float] = Field(
        None, ge=0.0, le=100.0,
        description="Plan feasibility blended into the base signal (server default if omitted)",
    )
    calibration: Optional[ReadinessTimelineConfig] = Field(None, description="Composer calibration overrides")

    @model_validator(mode="after")
    def _dates_strictly_increasing(self) -> ReadinessTimelineRequest:
        for previous, current in zip(self.points, self.points[1:]):
            if current.date <= previous.date:
                raise ValueError(
                    f"points must have strictly increasing dates ({previous.date} -> {current.date})"
                )
        return self


class GoalAssessmentRequest(ReadinessTimelineRequest):
    """Trajectory + goals + per-goal alignment losses."""

    alignment_losses: Optional[list[float]] = Field(
        None,
        description="Per-goal alignment loss (0-100), aligned with ``goals``",
    )
    goal_calibration: Optional[GoalReadinessConfig] = Field(None, description="Goal readiness calibration")
