"""
Projection service.

Stateless business logic behind the projection endpoints: applies the
server-side defaults, validates cross-field request constraints, and
calls the pure projection core.
"""

import logging

from fastapi import HTTPException, status

from app.core.config import Settings, settings
from app.projection.event_recovery import compute_event_recovery_profile
from app.projection.goal_readiness import assess_goals
from app.projection.readiness import compose_readiness_timeline
from app.schemas.goal import GoalTarget
from app.schemas.projection import EventRecoveryProfile, GoalAssessment, ReadinessTimeline
from app.schemas.requests import GoalAssessmentRequest, ReadinessTimelineRequest

logger = logging.getLogger(__name__)


class ProjectionService:
    """Service for readiness projections."""

    def __init__(self, config: Settings = settings):
        self.settings = config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def readiness_timeline(self, request: ReadinessTimelineRequest) -> ReadinessTimeline:
        """Compose the daily readiness timeline for a trajectory."""
        logger.info(
            "Composing readiness timeline: %d points, %d goals",
            len(request.points), len(request.goals),
        )
        return compose_readiness_timeline(
            request.points,
            request.goals,
            plan_readiness_score=self._plan_readiness(request),
            config=request.calibration,
        )

    def goal_assessments(self, request: GoalAssessmentRequest) -> list[GoalAssessment]:
        """Assess every targeted goal of the plan."""
        if request.alignment_losses is not None and len(request.alignment_losses) != len(request.goals):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    f"alignment_losses has {len(request.alignment_losses)} entries, "
                    f"expected one per goal ({len(request.goals)})"
                ),
            )

        logger.info(
            "Assessing goals: %d points, %d goals",
            len(request.points), len(request.goals),
        )
        return assess_goals(
            request.points,
            request.goals,
            alignment_losses=request.alignment_losses,
            plan_readiness_score=self._plan_readiness(request),
            timeline_config=request.calibration,
            config=request.goal_calibration,
        )

    def recovery_profile(self, target: GoalTarget) -> EventRecoveryProfile:
        """Recovery profile of a single target."""
        return compute_event_recovery_profile(target)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _plan_readiness(self, request: ReadinessTimelineRequest) -> float:
        if request.plan_readiness_score is not None:
            return request.plan_readiness_score
        return self.settings.DEFAULT_PLAN_READINESS_SCORE
