"""Liveness sub-checks reported by ``GET /health``.

Each check returns a status (``ok`` or ``warning``) plus human-readable figures.
The service is healthy only when every check reports ``ok``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

import psutil

from rollout_demo.models.schemas import CpuCheck, HealthChecks, MemoryCheck

BYTES_PER_MB = 1024 * 1024


@dataclass(frozen=True)
class MemoryUsage:
    used_bytes: int
    total_bytes: int


@dataclass(frozen=True)
class CpuTimes:
    user_s: float
    system_s: float


def read_memory_usage() -> MemoryUsage:
    mem_info = psutil.Process(os.getpid()).memory_info()
    return MemoryUsage(used_bytes=mem_info.rss, total_bytes=mem_info.vms)


def read_cpu_times() -> CpuTimes:
    times = psutil.Process(os.getpid()).cpu_times()
    return CpuTimes(user_s=times.user, system_s=times.system)


def _mb(value: int) -> str:
    return f"{value / BYTES_PER_MB:.2f} MB"


def check_memory(limit_bytes: int, usage: MemoryUsage | None = None) -> MemoryCheck:
    usage = usage or read_memory_usage()
    return MemoryCheck(
        status="ok" if usage.used_bytes < limit_bytes else "warning",
        heap_used=_mb(usage.used_bytes),
        heap_total=_mb(usage.total_bytes),
        limit=_mb(limit_bytes),
    )


def check_cpu(times: CpuTimes | None = None) -> CpuCheck:
    times = times or read_cpu_times()
    return CpuCheck(
        status="ok",
        user=f"{times.user_s * 1000:.2f} ms",
        system=f"{times.system_s * 1000:.2f} ms",
    )


def run_checks(limit_bytes: int) -> HealthChecks:
    return HealthChecks(memory=check_memory(limit_bytes), cpu=check_cpu())


def is_healthy(checks: HealthChecks) -> bool:
    return all(check.status == "ok" for check in (checks.memory, checks.cpu))
