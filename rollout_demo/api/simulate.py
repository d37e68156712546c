from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from rollout_demo.api.dependencies import get_app_settings, get_simulation
from rollout_demo.config import Settings
from rollout_demo.models.schemas import SlowResponse
from rollout_demo.observability.errors import error_body
from rollout_demo.services.simulation import SimulationSource


router = APIRouter(prefix="/api/v1", tags=["simulation"])


@router.get("/slow", response_model=SlowResponse)
async def slow(
    settings: Settings = Depends(get_app_settings),
    simulation: SimulationSource = Depends(get_simulation),
) -> SlowResponse:
    delay = await simulation.wait(settings.slow_max_delay_ms)
    return SlowResponse(message="Slow endpoint response", delay=f"{delay:.0f}ms")


@router.get("/error")
async def error() -> JSONResponse:
    structlog.get_logger("simulation").error("simulated_error_triggered")
    return JSONResponse(status_code=500, content=error_body("Simulated server error"))
