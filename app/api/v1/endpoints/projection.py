"""
Projection endpoints — daily readiness timeline, goal assessments,
recovery profiles.

All endpoints are stateless: the caller sends the trajectory and goals,
nothing is stored.
"""

from fastapi import APIRouter, Depends

from app.schemas.goal import GoalTarget
from app.schemas.projection import EventRecoveryProfile, GoalAssessment, ReadinessTimeline
from app.schemas.requests import GoalAssessmentRequest, ReadinessTimelineRequest
from app.services.projection_service import ProjectionService

router = APIRouter()


def get_projection_service() -> ProjectionService:
    return ProjectionService()


@router.post(
    "/readiness",
    summary="Compose the daily readiness timeline (0-100 per day).",
    response_model=ReadinessTimeline,
)
def post_readiness_timeline(
    data: ReadinessTimelineRequest,
    service: ProjectionService = Depends(get_projection_service),
):
    return service.readiness_timeline(data)


@router.post(
    "/goal-assessments",
    summary="Assess the readiness of every targeted goal.",
    response_model=list[GoalAssessment],
)
def post_goal_assessments(
    data: GoalAssessmentRequest,
    service: ProjectionService = Depends(get_projection_service),
):
    return service.goal_assessments(data)


@router.post(
    "/recovery-profile",
    summary="Get the recovery profile of a single goal target.",
    response_model=EventRecoveryProfile,
)
def post_recovery_profile(
    target: GoalTarget,
    service: ProjectionService = Depends(get_projection_service),
):
    return service.recovery_profile(target)
