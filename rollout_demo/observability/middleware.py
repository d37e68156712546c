from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.routing import Match

from rollout_demo.observability.metrics import (
    HTTP_REQUEST_DURATION,
    HTTP_REQUESTS_IN_FLIGHT,
    HTTP_REQUESTS_TOTAL,
    MetricsRegistry,
)


@dataclass
class RequestContext:
    method: str
    path: str
    user_agent: str | None
    started_at: float = field(default_factory=perf_counter)
    in_flight: bool = False

    def elapsed_ms(self) -> float:
        return max(0.0, (perf_counter() - self.started_at) * 1000.0)


def _header(scope: dict[str, Any], name: bytes) -> str | None:
    for key, value in scope.get("headers") or []:
        if key.lower() == name:
            return value.decode("latin-1")
    return None


def resolve_route(scope: dict[str, Any]) -> str:
    """Route template for metric labels, falling back to the raw path."""

    route = scope.get("route")
    template = getattr(route, "path_format", None) or getattr(route, "path", None)
    if template:
        return template

    app = scope.get("app")
    for candidate in getattr(app, "routes", None) or []:
        match, _ = candidate.matches(scope)
        if match == Match.FULL:
            return getattr(candidate, "path_format", None) or candidate.path

    return scope.get("path") or "/"


class RequestMetricsMiddleware:
    """Times every HTTP request, records it in the registry and writes one access log."""

    def __init__(self, app: Callable[..., Any], registry: MetricsRegistry) -> None:
        self.app = app
        self.registry = registry

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        ctx = RequestContext(
            method=scope.get("method", "GET"),
            path=scope.get("path", "/"),
            user_agent=_header(scope, b"user-agent"),
        )
        structlog.contextvars.bind_contextvars(request_id=str(uuid.uuid4()))

        self._track_in_flight(ctx, +1)
        status_code: int = 500

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code

            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed_ms = ctx.elapsed_ms()
            route = resolve_route(scope)

            # Update metrics first so they update even if logging misbehaves.
            self._record(ctx, route, status_code, elapsed_ms)

            structlog.get_logger("access").info(
                "http_request",
                method=ctx.method,
                path=ctx.path,
                route=route,
                status=status_code,
                duration_ms=round(elapsed_ms, 2),
                user_agent=ctx.user_agent,
            )

            structlog.contextvars.clear_contextvars()

    def _record(self, ctx: RequestContext, route: str, status_code: int, elapsed_ms: float) -> None:
        labels = {"method": ctx.method, "route": route, "status_code": status_code}
        try:
            self.registry.observe_duration(HTTP_REQUEST_DURATION, labels, elapsed_ms)
            self.registry.increment(HTTP_REQUESTS_TOTAL, labels)
        except Exception:
            structlog.get_logger("access").exception("metrics_update_failed", route=route)
        finally:
            self._track_in_flight(ctx, -1)

    def _track_in_flight(self, ctx: RequestContext, delta: int) -> None:
        if (delta > 0) == ctx.in_flight:
            return
        try:
            self.registry.increment(HTTP_REQUESTS_IN_FLIGHT, delta=delta)
        except Exception:
            structlog.get_logger("access").exception("metrics_update_failed", metric=HTTP_REQUESTS_IN_FLIGHT)
            return
        ctx.in_flight = delta > 0
