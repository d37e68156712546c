from __future__ import annotations

import sys

from rollout_demo.config import get_settings
from rollout_demo.observability.logging import configure_logging, parse_log_level, service_fields
from rollout_demo.server import build_server


def main() -> None:
    settings = get_settings()
    level = parse_log_level(settings.log_level)
    configure_logging(level, fields=service_fields(settings))

    server = build_server(settings, level)
    server.run()

    # startup failures (port in use, lifespan error) leave the server unstarted
    sys.exit(0 if server.started else 1)


if __name__ == "__main__":
    main()
