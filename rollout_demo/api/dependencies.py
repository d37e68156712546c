from __future__ import annotations

from fastapi import Request

from rollout_demo.config import Settings
from rollout_demo.observability.metrics import MetricsRegistry
from rollout_demo.services.simulation import SimulationSource


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> MetricsRegistry:
    return request.app.state.metrics


def get_simulation(request: Request) -> SimulationSource:
    return request.app.state.simulation
