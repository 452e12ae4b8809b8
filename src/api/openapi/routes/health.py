"""Health check endpoints."""

from enum import Enum

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from src.api.dependencies import FactoryDep, SettingsDep

router = APIRouter()


class HealthStatus(str, Enum):
    """Health check status."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ComponentHealth(BaseModel):
    """Health status of a single component."""

    name: str = Field(description="Component name")
    status: HealthStatus = Field(description="Component health status")
    message: str | None = Field(default=None, description="Additional details")
    latency_ms: float | None = Field(default=None, description="Check latency")


class HealthResponse(BaseModel):
    """Health check response."""

    status: HealthStatus = Field(description="Overall health status")
    version: str = Field(description="Application version")
    environment: str = Field(description="Deployment environment")
    components: list[ComponentHealth] = Field(
        default_factory=list,
        description="Individual component health",
    )
    active_jobs: int | None = Field(
        default=None,
        description="Pipeline jobs pending or in flight",
    )


class LivenessResponse(BaseModel):
    """Simple liveness response."""

    status: str = Field(default="ok")


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool = Field(description="Whether the service is ready to accept requests")
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Individual readiness checks",
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Get overall health status of the service and its components.",
)
async def health_check(
    request: Request,
    settings: SettingsDep,
    factory: FactoryDep,
) -> HealthResponse:
    """Check the document database, the embedded worker pool and queue depth.

    A stopped embedded pool degrades the overall status.
    """
    db_health = await factory.get_document_db().health_check()
    components = [
        ComponentHealth(
            name="document_db",
            status=HealthStatus.HEALTHY if db_health.healthy else HealthStatus.UNHEALTHY,
            message=db_health.message or f"Provider: {settings.document_db.provider}",
            latency_ms=round(db_health.latency_ms, 2),
        )
    ]

    overall = HealthStatus.HEALTHY if db_health.healthy else HealthStatus.UNHEALTHY

    pool = getattr(request.app.state, "worker_pool", None)
    if pool is not None:
        pool_status = HealthStatus.HEALTHY if pool.is_running else HealthStatus.DEGRADED
        components.append(ComponentHealth(name="worker_pool", status=pool_status))
        if overall == HealthStatus.HEALTHY:
            overall = pool_status

    active_jobs: int | None = None
    if db_health.healthy:
        active_jobs = await factory.get_job_queue().count_active()

    return HealthResponse(
        status=overall,
        version=settings.app.version,
        environment=settings.app.environment,
        components=components,
        active_jobs=active_jobs,
    )


@router.get(
    "/health/live",
    response_model=LivenessResponse,
    summary="Liveness probe",
    description="Simple liveness check for Kubernetes probes.",
)
async def liveness() -> LivenessResponse:
    """Simple liveness check - just verifies the app is running."""
    return LivenessResponse(status="ok")


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    description="Readiness check for Kubernetes probes.",
)
async def readiness(
    factory: FactoryDep,
) -> ReadinessResponse:
    """Ready when the document database answers."""
    db_health = await factory.get_document_db().health_check()
    checks = {"document_db": db_health.healthy}
    return ReadinessResponse(ready=all(checks.values()), checks=checks)
