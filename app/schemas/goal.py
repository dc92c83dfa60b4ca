"""
Goal and goal-target schemas.

A goal is a dated milestone in a training plan.  It carries zero or more
measurable targets; only the first one (the *primary target*) drives the
recovery and fatigue model.  Additional targets are informational.

Target-specific fields use SI units:

- ``race_performance`` — ``distance_m`` and ``target_time_s``
- ``pace_threshold`` / ``power_threshold`` — ``test_duration_s``
- ``hr_threshold`` — no extra fields (fixed recovery profile)
"""

from __future__ import annotations

import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


# ======================================================================
# Enums
# ======================================================================

class TargetType(str, Enum):
    """Kind of measurable objective attached to a goal."""
    RACE_PERFORMANCE = "race_performance"
    PACE_THRESHOLD = "pace_threshold"
    POWER_THRESHOLD = "power_threshold"
    HR_THRESHOLD = "hr_threshold"


class ActivityCategory(str, Enum):
    """Sport family of the target."""
    RUN = "run"
    BIKE = "bike"
    SWIM = "swim"
    OTHER = "other"


# ======================================================================
# Targets and goals
# ======================================================================

class GoalTarget(BaseModel):
    """A single measurable objective attached to a goal.

    ``target_type`` accepts unknown strings so that targets authored by
    newer clients still flow through the engine; those fall back to the
    conservative default recovery profile.
    """

    target_type: TargetType | str = Field(
        ...,
        description="One of: race_performance, pace_threshold, power_threshold, hr_threshold",
    )
    activity_category: ActivityCategory = Field(ActivityCategory.OTHER, description="run, bike, swim or other")
    distance_m: Optional[float] = Field(None, gt=0.0, description="Race distance in metres (race_performance)")
    target_time_s: Optional[float] = Field(None, gt=0.0, description="Target finish time in seconds (race_performance)")
    test_duration_s: Optional[float] = Field(None, gt=0.0, description="Test duration in seconds (pace/power threshold)")

    @property
    def duration_hours(self) -> Optional[float]:
        """Expected effort duration in hours, if the target defines one."""
        if self.target_type == TargetType.RACE_PERFORMANCE:
            seconds = self.target_time_s
        elif self.target_type in (TargetType.PACE_THRESHOLD, TargetType.POWER_THRESHOLD):
            seconds = self.test_duration_s
        else:
            seconds = None
        return seconds / 3600.0 if seconds else None


class Goal(BaseModel):
    """A dated milestone in the plan."""

    goal_id: Optional[str] = Field(None, description="Caller-side identifier, echoed back in assessments")
    name: Optional[str] = Field(None, description="Display name")
    target_date: datetime.date = Field(..., description="Day the goal occurs")
    priority: int = Field(5, ge=1, le=10, description="Presentation tie-break only (1 = lowest)")
    targets: list[GoalTarget] = Field(default_factory=list, description="Ordered targets; the first is primary")

    @property
    def primary_target(self) -> Optional[GoalTarget]:
        return self.targets[0] if self.targets else None
