from __future__ import annotations

import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from rollout_demo.api.simulate import router as simulate_router
from rollout_demo.api.system import router as system_router
from rollout_demo.api.users import router as users_router
from rollout_demo.config import Settings, get_settings
from rollout_demo.observability.errors import install_error_handlers
from rollout_demo.observability.metrics import MetricsRegistry, build_http_metrics
from rollout_demo.observability.middleware import RequestMetricsMiddleware
from rollout_demo.services.simulation import SimulationSource


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings
    log = structlog.get_logger("server")
    log.info(
        "server_started",
        service=settings.service_name,
        port=settings.port,
        version=settings.app_version,
        commit=settings.git_commit,
        environment=settings.environment,
    )
    yield
    log.info("server_stopped", uptime=round(time.monotonic() - app.state.started_at, 3))


def create_app(
    settings: Settings | None = None,
    *,
    registry: MetricsRegistry | None = None,
    simulation: SimulationSource | None = None,
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title="Rollout Demo", version=settings.app_version, lifespan=_lifespan)
    app.state.settings = settings
    app.state.started_at = time.monotonic()
    app.state.metrics = build_http_metrics(registry or MetricsRegistry(), settings)
    app.state.simulation = simulation or SimulationSource.from_seed(
        settings.random_seed, error_rate=settings.simulated_error_rate
    )

    app.include_router(system_router)
    app.include_router(users_router)
    app.include_router(simulate_router)

    # add_middleware prepends, so the instrumentation wraps the error boundary and sees its 500s.
    install_error_handlers(app, expose_errors=settings.is_development)
    app.add_middleware(RequestMetricsMiddleware, registry=app.state.metrics)
    return app
