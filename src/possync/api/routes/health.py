"""
Health check endpoint, polled by the client's connectivity probe.
"""

import time

from fastapi import APIRouter

from possync import __version__
from possync.api.schemas import HealthResponse

router = APIRouter(prefix="/api/health", tags=["health"])

# Track startup time
_start_time = time.time()


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        version=__version__,
        uptime_seconds=time.time() - _start_time,
    )
