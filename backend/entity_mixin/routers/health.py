"""
Health check router for liveness and readiness probes.
"""
from fastapi import APIRouter, status

from entity_mixin.dependencies.auth import Broker

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check():
    """
    Basic health check endpoint.
    Returns 200 if the API is running.
    """
    return {"status": "healthy"}


@router.get(
    "/health/ready",
    status_code=status.HTTP_200_OK,
    summary="Readiness check with storage backends",
)
async def readiness_check(broker: Broker):
    """
    Readiness check that verifies the storage of every entity service.
    """
    checks = {"api": "healthy"}

    for name, service in broker.services.items():
        try:
            if await service.adapter.ping():
                checks[name] = "healthy"
            else:
                checks[name] = "unhealthy: not connected"
        except Exception as e:
            checks[name] = f"unhealthy: {str(e)}"

    all_healthy = all(v == "healthy" for v in checks.values())

    return {
        "status": "healthy" if all_healthy else "degraded",
        "checks": checks,
    }
