from __future__ import annotations

from typing import Any, Callable

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


def error_body(message: str, **extra: Any) -> dict[str, Any]:
    return {"error": message, **extra}


def not_found_response(path: str, method: str) -> JSONResponse:
    return JSONResponse(status_code=404, content=error_body("Not found", path=path, method=method))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Unmatched routes and unmatched methods are both reported as a plain 404.
    if exc.status_code in (404, 405) and exc.detail in ("Not Found", "Method Not Allowed"):
        return not_found_response(request.url.path, request.method)

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


class ErrorBoundaryMiddleware:
    """Turns any exception escaping a handler into a logged, JSON 500 response."""

    def __init__(self, app: Callable[..., Any], expose_errors: bool = False) -> None:
        self.app = app
        self.expose_errors = expose_errors

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal response_started

            if message.get("type") == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            structlog.get_logger("errors").error(
                "unhandled_exception",
                error=str(exc),
                path=scope.get("path"),
                method=scope.get("method"),
                exc_info=exc,
            )
            if response_started:
                # Headers are already on the wire; let the server abort the connection.
                raise

            content = error_body("Internal server error")
            if self.expose_errors:
                content["message"] = str(exc)
            response = JSONResponse(status_code=500, content=content)
            await response(scope, receive, send)


def install_error_handlers(app: FastAPI, *, expose_errors: bool) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_middleware(ErrorBoundaryMiddleware, expose_errors=expose_errors)
