"""API route registration.

Aggregates all API routers into a single router
for inclusion in the main application.
"""

from fastapi import APIRouter

from flowstudio.api.routes.flows import router as flows_router
from flowstudio.api.routes.onboarding import router as onboarding_router
from flowstudio.api.routes.system import router as system_router
from flowstudio.api.routes.templates import router as templates_router

# Main API router
api_router = APIRouter()

api_router.include_router(system_router)
api_router.include_router(flows_router)
api_router.include_router(templates_router)
api_router.include_router(onboarding_router)

__all__ = ["api_router"]
