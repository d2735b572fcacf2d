"""Health check endpoints for monitoring and deployment verification."""

import time
from typing import Any, Awaitable, Callable

from fastapi import APIRouter, Request, Response, status

from src.api.middleware.latency_logging import get_latency_stats
from src.schemas.common import CheckResult, HealthResponse, HealthStatus, ReadinessResponse

router = APIRouter(tags=["health"])


async def _timed_check(name: str, probe: Callable[[], Awaitable[dict[str, Any]]]) -> CheckResult:
    start_time = time.perf_counter()
    result = await probe()
    latency_ms = (time.perf_counter() - start_time) * 1000
    return CheckResult(
        name=name,
        healthy=result["healthy"],
        latency_ms=round(latency_ms, 2),
        error=result.get("error"),
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness check",
    description="Basic health check to verify the service is running. Used for liveness probes.",
)
async def health_check() -> HealthResponse:
    """Return basic health status.

    This endpoint should always return 200 if the service is running.
    It does not check external dependencies.
    """
    return HealthResponse(status=HealthStatus.HEALTHY)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "User store reachable"},
        503: {"description": "User store unreachable"},
    },
    summary="Readiness check",
    description="Check the user store and profile cache. Used for readiness probes.",
)
async def readiness_check(request: Request, response: Response) -> ReadinessResponse:
    """Check readiness of backing services.

    Only the user store gates readiness. A cache outage is reported but
    the service keeps serving reads straight from the store.

    Args:
        request: Request giving access to app.state.
        response: FastAPI response object for setting status code.

    Returns:
        ReadinessResponse: Status of all dependency checks.
    """
    state = request.app.state
    database = await _timed_check("database", state.user_store.ping)
    cache = await _timed_check("cache", state.profile_cache.ping)

    overall_status = HealthStatus.HEALTHY if database.healthy else HealthStatus.UNHEALTHY
    if not database.healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(status=overall_status, checks=[database, cache])


@router.get(
    "/health/latency",
    summary="Request latency stats",
    description="Aggregated request latencies recorded by the latency middleware.",
)
async def latency_stats() -> dict:
    """Return overall and per-path latency stats."""
    stats = get_latency_stats()
    return {
        "overall": stats.get_stats(),
        "by_path": stats.get_stats_by_path(),
    }
