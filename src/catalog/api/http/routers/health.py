"""Health check endpoints router for monitoring service availability."""

from typing import Any

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from src.catalog.api.http.app_data import ApplicationDependencies
from src.catalog.runtime.context import get_config

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health() -> dict[str, str]:
    """Liveness check: 200 OK while the process runs. Dependencies are not checked."""
    return {"status": "healthy", "service": "api"}


@router.get("/ready", response_model=None)
async def readiness(request: Request) -> dict[str, Any] | JSONResponse:
    """Readiness check over the service dependencies.

    Returns 200 if all critical services are ready, 503 otherwise. Redis is
    not critical since the cache falls back to memory. Temporal is critical
    only when it is the media queue backend.
    """
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    config = get_config()

    checks: dict[str, Any] = {}
    all_healthy = True

    db_healthy = app_deps.database_service.health_check()
    checks["database"] = {
        "status": "healthy" if db_healthy else "unhealthy",
        "type": app_deps.database_service.engine.dialect.name,
    }
    if not db_healthy:
        all_healthy = False

    redis_healthy = await app_deps.redis_service.health_check()
    checks["redis"] = {
        "status": "healthy" if redis_healthy else "degraded",
        "cache": type(app_deps.cache).__name__,
    }

    if config.catalog.queue_backend == "temporal" and config.temporal.enabled:
        temporal_healthy = await app_deps.temporal_service.health_check()
        checks["temporal"] = {
            "status": "healthy" if temporal_healthy else "unhealthy",
            "url": app_deps.temporal_service.url,
            "namespace": app_deps.temporal_service.namespace,
            "task_queue": app_deps.temporal_service.task_queue,
        }
        if not temporal_healthy:
            all_healthy = False
    else:
        checks["temporal"] = {
            "status": "disabled",
            "note": f"Media queue backend is '{config.catalog.queue_backend}'",
        }

    response = {
        "status": "ready" if all_healthy else "not_ready",
        "environment": config.app.environment,
        "checks": checks,
    }

    if not all_healthy:
        return JSONResponse(status_code=503, content=response)

    return response
