"""
API v1 router.

Aggregates all v1 endpoints.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import projection

api_router = APIRouter()

# Include endpoint routers
api_router.include_router(
    projection.router, prefix="/projection", tags=["Projection"]
)
