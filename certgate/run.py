"""Programmatic uvicorn entry point for certgate.

Loads the config once, builds the app with it (so CORS origins and the store
path come from the same file) and starts uvicorn on the configured host/port.

Usage:
    python -m certgate.run
    certgate                 # via pyproject.toml [project.scripts]

Raises SystemExit(1) before binding if the config is invalid or no bootstrap
secret is configured.
"""

from __future__ import annotations

import uvicorn

from certgate.config import load_config
from certgate.main import LOG_LEVEL, create_app

# Max concurrent connections; uvicorn answers 503 beyond this.
UVICORN_LIMIT_CONCURRENCY: int = 100

# OS-level TCP connection backlog queue size.
UVICORN_BACKLOG: int = 50

# Low keep-alive timeout narrows the Slow Loris window.
UVICORN_TIMEOUT_KEEP_ALIVE: int = 5


def main() -> None:
    config = load_config()

    uvicorn.run(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        log_level=LOG_LEVEL.lower(),
        limit_concurrency=UVICORN_LIMIT_CONCURRENCY,
        backlog=UVICORN_BACKLOG,
        timeout_keep_alive=UVICORN_TIMEOUT_KEEP_ALIVE,
    )


if __name__ == "__main__":
    main()
