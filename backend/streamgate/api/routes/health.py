"""Health & Readiness Checks — liveness, readiness, and background job health.

Invariants:
    - GET /health always returns 200 if the process is serving (liveness)
    - GET /health/ready returns 503 if the storage handle cannot ping (readiness)
    - GET /health/jobs reports every supervised job; a failed job never turns
      liveness or readiness red
"""

import logging

from fastapi import Depends, status
from fastapi.responses import JSONResponse

from streamgate.api.context import StartupContext, get_context
from streamgate.api.routing import GatewayRouter, RouteGroup

logger = logging.getLogger(__name__)


def create_health_group() -> RouteGroup:
    router = GatewayRouter(prefix="/health", tags=["health"])

    @router.get("", status_code=status.HTTP_200_OK)
    async def health_check(context: StartupContext = Depends(get_context)):
        """Basic liveness check. Returns 200 if the process is up."""
        return {
            "status": "healthy",
            "service": "streamgate",
            "version": context.launch.version,
            "environment": context.settings.environment,
        }

    @router.get("/ready")
    async def readiness_check(context: StartupContext = Depends(get_context)):
        """Readiness check — includes storage connectivity."""
        if not await context.storage.health_check():
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={
                    "status": "not_ready",
                    "reason": "storage_unavailable",
                },
            )
        return {"status": "ready", "checks": {"storage": "healthy"}}

    @router.get("/jobs")
    async def jobs_health(context: StartupContext = Depends(get_context)):
        return {"jobs": [job.to_dict() for job in context.supervisor.health()]}

    return RouteGroup(name="health", router=router)
