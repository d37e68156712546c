from __future__ import annotations

import contextlib
import signal
import threading
from collections.abc import Iterator
from types import FrameType

import structlog
import uvicorn

from rollout_demo.config import Settings
from rollout_demo.main import create_app


TERMINATION_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGTERM, signal.SIGINT)


class GracefulServer(uvicorn.Server):
    """uvicorn server that treats SIGTERM and SIGINT alike and never re-raises them.

    The first signal stops accepting connections and lets in-flight requests finish
    (bounded by ``timeout_graceful_shutdown``); a second one forces the exit.
    """

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        previous = {sig: signal.signal(sig, self.handle_termination) for sig in TERMINATION_SIGNALS}
        try:
            yield
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

    def handle_termination(self, sig: int, frame: FrameType | None) -> None:
        name = signal.Signals(sig).name
        log = structlog.get_logger("server")
        if self.should_exit:
            log.warning("forced_shutdown", signal=name)
            self.force_exit = True
            return
        log.info("shutdown_requested", signal=name)
        self.should_exit = True


def build_server(settings: Settings, level: int) -> GracefulServer:
    config = uvicorn.Config(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_config=None,
        log_level=level,
        access_log=False,
        timeout_graceful_shutdown=settings.shutdown_timeout_s,
    )
    return GracefulServer(config)
