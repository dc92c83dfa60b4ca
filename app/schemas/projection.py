"""
Projection schemas — daily trajectory, recovery profiles and readiness.

A projection is a day-by-day simulated trajectory of fitness (CTL, the
slow-moving training load) and fatigue (ATL, the fast-moving training
load).  ``balance = fitness - fatigue`` (TSB) is the freshness proxy.

Readiness values are 0-100 where:
    0   = not ready to perform at all
    100 = fully prepared, fresh and fit
"""

from __future__ import annotations

import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ProjectionPoint(BaseModel):
    """One calendar day of the simulated trajectory."""

    date: datetime.date
    fitness: float = Field(..., allow_inf_nan=False, description="Long-term training load (CTL)")
    fatigue: float = Field(..., allow_inf_nan=False, description="Short-term training load (ATL)")

    @property
    def balance(self) -> float:
        """Form / freshness (TSB)."""
        return self.fitness - self.fatigue


class EventRecoveryProfile(BaseModel):
    """Recovery characteristics of a single goal target.  Never persisted."""

    recovery_days_full: int = Field(..., ge=0, le=28, description="Days until full recovery")
    recovery_days_functional: int = Field(
        ..., ge=0,
        description="Days until moderate training can resume",
    )
    fatigue_intensity: float = Field(..., ge=0.0, le=100.0, description="Event intensity on a 0-100 scale")
    fatigue_spike_factor: float = Field(
        ..., ge=1.0,
        description="Expected fatigue spike multiplier (1.0 = no spike)",
    )


class GoalAnchor(BaseModel):
    """Peak-forcing anchor derived for one goal during composition."""

    goal_index: int = Field(..., description="Position of the goal in the input goal list")
    point_index: int = Field(..., description="Index of the goal day in the point sequence")
    taper_days: int = Field(..., description="Taper length implied by event intensity (informational)")
    peak_window: int = Field(..., description="Half-width (days) of the local-peak window")
    peak_slope: float = Field(..., description="Taper steepness implied by event intensity (informational, not used by the lift)")
    allow_natural_fatigue: bool = Field(
        ...,
        description="True when this goal sits inside another goal's functional recovery window",
    )
    conflicting_goal_indexes: list[int] = Field(default_factory=list)


class PointReadiness(BaseModel):
    """Per-day breakdown of the composed readiness score."""

    date: datetime.date
    base_score: float = Field(..., ge=0.0, le=100.0, description="State-based score before event fatigue")
    fatigue_penalty: float = Field(..., ge=0.0, le=60.0, description="Penalty from the most limiting event")
    limiting_goal_index: Optional[int] = Field(
        None,
        description="Goal responsible for the penalty (None if no penalty)",
    )
    score: float = Field(..., ge=0.0, le=100.0, description="Final readiness after smoothing and anchoring")


class ReadinessTimeline(BaseModel):
    """Full output of the readiness composer."""

    scores: list[float] = Field(..., description="One readiness score per input point, same order")
    points: list[PointReadiness]
    anchors: list[GoalAnchor]
    ignored_goal_indexes: list[int] = Field(
        default_factory=list,
        description="Goals outside the trajectory span (no anchor, no penalty)",
    )


class GoalAssessment(BaseModel):
    """Overall feasibility of one goal with at least one target."""

    goal_index: int
    goal_id: Optional[str] = None
    target_date: datetime.date
    state_readiness_score: float = Field(..., ge=0.0, le=100.0, description="Composed readiness on the goal day")
    target_attainment_score: float = Field(
        ..., ge=0.0, le=100.0,
        description="Projected fitness relative to the fitness the target demands",
    )
    alignment_loss: float = Field(..., ge=0.0, le=100.0, description="Plan/goal structure mismatch (0 = aligned)")
    goal_readiness_score: float = Field(..., ge=0.0, le=100.0)
    required_fitness: float = Field(..., description="Estimated CTL the primary target demands")
    projected_fitness: float = Field(..., description="Projected CTL on the goal day")
    recovery_profile: EventRecoveryProfile
    conflicting_goal_indexes: list[int] = Field(default_factory=list)
