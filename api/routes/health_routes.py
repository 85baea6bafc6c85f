"""Liveness, readiness and dependency health for the booking API."""

from fastapi import APIRouter, HTTPException, Request
from starlette import status

from core.database import check_db_connection, comprehensive_health_check
from core.ratelimit import READ_LIMIT, limiter
from core.telemetry import SERVICE_NAME
from schemas import (
    DetailedHealthResponse,
    HealthResponse,
    PoolStatusResponse,
    ProviderStatusResponse,
)
from services.notifications_service import provider_status

router = APIRouter(tags=["health"])


def _overall_status(database_ok: bool, providers: list[ProviderStatusResponse]) -> str:
    if not database_ok:
        return "unhealthy"
    # Bookings still work with a provider down; only the notifications lag
    if any(p.enabled and p.circuit != "closed" for p in providers):
        return "degraded"
    return "healthy"


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(status="healthy", service=SERVICE_NAME)


@router.get("/health/detailed", response_model=DetailedHealthResponse)
@limiter.limit(READ_LIMIT)
async def health_detailed(request: Request) -> DetailedHealthResponse:
    """Database, pool and notification provider state.

    Always 200; read ``status`` (healthy, degraded or unhealthy).
    """
    result = await comprehensive_health_check(request.app.state.engine)
    providers = [ProviderStatusResponse(**p) for p in provider_status()]
    pool = result["pool"]

    return DetailedHealthResponse(
        status=_overall_status(result["database"], providers),
        database=result["database"],
        pool=PoolStatusResponse(**pool._asdict()) if pool is not None else None,
        providers=providers,
    )


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={503: {"description": "Still starting, init failed or DB unreachable"}},
)
@limiter.limit(READ_LIMIT)
async def ready(request: Request) -> HealthResponse:
    """200 once migrations have run and the database answers."""
    state = request.app.state
    if getattr(state, "init_error", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Initialization failed: {state.init_error}",
        )
    if not getattr(state, "init_done", False):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Starting"
        )

    try:
        await check_db_connection(state.engine)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable",
        ) from e

    return HealthResponse(status="ready", service=SERVICE_NAME)
