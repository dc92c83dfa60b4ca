"""Business logic services."""

from app.services.projection_service import ProjectionService

__all__ = [
    "ProjectionService",
]
