"""API v1 router aggregating all endpoints."""

from fastapi import APIRouter

from ovr.api.v1 import (
    corrective_actions,
    health,
    incidents,
    investigations,
    shared_access,
)

api_router = APIRouter()

# Health check
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"],
)

# Incidents and workflow actions
api_router.include_router(
    incidents.router,
    tags=["incidents"],
)

# Investigations
api_router.include_router(
    investigations.router,
    tags=["investigations"],
)

# Corrective actions
api_router.include_router(
    corrective_actions.router,
    tags=["corrective-actions"],
)

# Shared access invitations
api_router.include_router(
    shared_access.router,
    tags=["shared-access"],
)
