"""System health endpoint.

- /health  Lightweight liveness probe (no dependency checks)
"""

from datetime import UTC, datetime

from fastapi import APIRouter

from flowstudio import __version__
from flowstudio.api.schemas import HealthResponse

router = APIRouter(tags=["System"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check (Liveness)",
)
async def health_check() -> HealthResponse:
    """Returns healthy while the process is serving requests."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
    )
