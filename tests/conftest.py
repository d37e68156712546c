from __future__ import annotations

import asyncio
import random
from collections.abc import AsyncIterator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from rollout_demo.config import Settings, get_settings
from rollout_demo.main import create_app
from rollout_demo.services.simulation import SimulationSource


_ENV_VARS = (
    "SERVICE_NAME",
    "HOST",
    "PORT",
    "LOG_LEVEL",
    "APP_VERSION",
    "GIT_COMMIT",
    "APP_ENV",
    "MEMORY_LIMIT_MB",
    "SIMULATED_ERROR_RATE",
    "USERS_MAX_DELAY_MS",
    "SLOW_MAX_DELAY_MS",
    "RANDOM_SEED",
    "SHUTDOWN_TIMEOUT_S",
)


class RecordingSleep:
    """Stands in for asyncio.sleep; remembers requested delays and only yields to the loop."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(0)


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's local .env out of the tests.
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(APP_VERSION="2.3.4", GIT_COMMIT="abc1234")


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def simulation(sleeper: RecordingSleep) -> SimulationSource:
    return SimulationSource(rng=random.Random(1234), error_rate=0.0, sleep=sleeper)


@pytest.fixture
def app(settings: Settings, simulation: SimulationSource) -> FastAPI:
    return create_app(settings, simulation=simulation)


@pytest.fixture
async def api_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
