import pytest

from rollout_demo.services import health as health_service
from rollout_demo.services.health import BYTES_PER_MB, CpuTimes, MemoryUsage


@pytest.fixture
def memory_usage(monkeypatch: pytest.MonkeyPatch):
    def _set(used_mb: int) -> None:
        usage = MemoryUsage(used_bytes=used_mb * BYTES_PER_MB, total_bytes=1024 * BYTES_PER_MB)
        monkeypatch.setattr(health_service, "read_memory_usage", lambda: usage)

    return _set


async def test_health_ok_below_memory_limit(api_client, memory_usage) -> None:
    memory_usage(100)

    resp = await api_client.get("/health")
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["status"] == "healthy"
    assert payload["checks"]["memory"]["status"] == "ok"
    assert payload["checks"]["memory"]["heap_used"] == "100.00 MB"
    assert payload["checks"]["memory"]["limit"] == "512.00 MB"
    assert payload["checks"]["cpu"]["status"] == "ok"
    assert payload["checks"]["cpu"]["user"].endswith(" ms")


async def test_health_503_when_memory_above_limit(api_client, memory_usage) -> None:
    memory_usage(600)

    resp = await api_client.get("/health")
    assert resp.status_code == 503
    payload = resp.json()
    assert payload["status"] == "unhealthy"
    assert payload["checks"]["memory"]["status"] == "warning"
    assert payload["checks"]["cpu"]["status"] == "ok"


async def test_health_reads_real_process_figures(api_client) -> None:
    resp = await api_client.get("/health")
    assert resp.status_code in (200, 503)
    assert resp.json()["checks"]["memory"]["heap_used"].endswith(" MB")


def test_memory_check_threshold_is_exclusive() -> None:
    limit = 512 * BYTES_PER_MB
    assert health_service.check_memory(limit, MemoryUsage(limit - 1, limit)).status == "ok"
    assert health_service.check_memory(limit, MemoryUsage(limit, limit)).status == "warning"


def test_cpu_check_always_ok() -> None:
    check = health_service.check_cpu(CpuTimes(user_s=1.5, system_s=0.25))
    assert check.status == "ok"
    assert check.user == "1500.00 ms"
    assert check.system == "250.00 ms"
