from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from rollout_demo.api.dependencies import get_app_settings, get_registry
from rollout_demo.config import Settings
from rollout_demo.models.schemas import HealthResponse, ReadinessResponse, ServiceInfo
from rollout_demo.observability.metrics import MetricsRegistry
from rollout_demo.services import health as health_service


router = APIRouter(tags=["system"])


def _uptime(request: Request) -> float:
    return round(time.monotonic() - request.app.state.started_at, 3)


@router.get("/", response_model=ServiceInfo)
async def service_info(request: Request, settings: Settings = Depends(get_app_settings)) -> ServiceInfo:
    return ServiceInfo(
        service=settings.service_name,
        version=settings.app_version,
        commit=settings.git_commit,
        environment=settings.environment,
        timestamp=datetime.now(timezone.utc),
        uptime=_uptime(request),
        message="Demo app for GitOps workflows",
    )


@router.get("/health", response_model=HealthResponse, responses={503: {"model": HealthResponse}})
async def health(request: Request, settings: Settings = Depends(get_app_settings)) -> JSONResponse:
    checks = health_service.run_checks(settings.memory_limit_bytes)
    healthy = health_service.is_healthy(checks)
    payload = HealthResponse(
        status="healthy" if healthy else "unhealthy",
        timestamp=datetime.now(timezone.utc),
        uptime=_uptime(request),
        checks=checks,
    )
    return JSONResponse(status_code=200 if healthy else 503, content=payload.model_dump(mode="json"))


@router.get("/ready", response_model=ReadinessResponse)
async def ready() -> ReadinessResponse:
    # Nothing to warm up: the process is ready as soon as it serves requests.
    return ReadinessResponse(status="ready", timestamp=datetime.now(timezone.utc))


@router.get("/metrics", include_in_schema=False)
async def metrics(registry: MetricsRegistry = Depends(get_registry)) -> Response:
    return Response(content=registry.snapshot(), media_type=registry.content_type)
