from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class User(BaseModel):
    id: int
    name: str
    email: str
    created_at: datetime | None = None


class UsersPage(BaseModel):
    users: list[User]
    total: int
    page: int = 1


class ServiceInfo(BaseModel):
    service: str
    version: str
    commit: str
    environment: str
    timestamp: datetime
    uptime: float
    message: str


class CheckResult(BaseModel):
    status: Literal["ok", "warning"]


class MemoryCheck(CheckResult):
    heap_used: str
    heap_total: str
    limit: str


class CpuCheck(CheckResult):
    user: str
    system: str


class HealthChecks(BaseModel):
    memory: MemoryCheck
    cpu: CpuCheck


class HealthResponse(BaseModel):
    status: Literal["healthy", "unhealthy"]
    timestamp: datetime
    uptime: float
    checks: HealthChecks


class ReadinessResponse(BaseModel):
    status: Literal["ready"]
    timestamp: datetime


class SlowResponse(BaseModel):
    message: str
    delay: str
