"""
Health check endpoints for service monitoring.

/healthz answers as long as the process is up; /healthz/ready also checks
the thread store and the graph store.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from ..config import Settings, get_settings
from ..db import database
from ..utils.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.get(
    "/healthz",
    response_model=Dict[str, str],
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Returns service health status and version information",
    response_description="Service is healthy",
)
async def health_check(
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> Dict[str, str]:
    """
    Health check endpoint for monitoring and load balancer probes.

    Example response:
        {"status": "ok", "version": "0.1.0", "environment": "development"}
    """
    logger.debug("Health check requested")

    return {
        "status": "ok",
        "version": settings.app_version,
        "environment": settings.app_env,
    }


@router.get(
    "/healthz/live",
    response_model=Dict[str, str],
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    include_in_schema=False,
)
async def liveness_probe() -> Dict[str, str]:
    """Returns 200 if the process is alive, regardless of dependencies."""
    return {"status": "alive"}


@router.get(
    "/healthz/ready",
    summary="Readiness probe",
    description="Checks the thread store and the graph store",
    responses={503: {"description": "A dependency is unavailable"}},
)
async def readiness_probe(request: Request) -> JSONResponse:
    """
    Readiness probe.

    Example response:
        {"ready": true, "database": {"ok": true, "latency_ms": 1.2}, "graph": {"ok": true}}
    """
    checks: Dict[str, Any] = {}

    try:
        latency_ms = await database.ping()
        checks["database"] = {"ok": True, "latency_ms": round(latency_ms, 2)}
    except Exception as e:
        logger.warning("Database readiness check failed", error=str(e))
        checks["database"] = {"ok": False, "error": str(e)}

    executor = getattr(request.app.state, "graph_executor", None)
    if executor is None:
        checks["graph"] = {"ok": False, "error": "graph executor not initialized"}
    else:
        try:
            await executor.verify_connectivity()
            checks["graph"] = {"ok": True}
        except Exception as e:
            logger.warning("Graph readiness check failed", error=str(e))
            checks["graph"] = {"ok": False, "error": str(e)}

    ready = all(check["ok"] for check in checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"ready": ready, **checks},
    )
