"""streamgate — process entry point.

Invariants:
    - Configuration is validated before anything else; invalid config exits 1
    - Logging configured once, before the bootstrap sequence starts
    - A storage or listener failure exits the process with status 1
    - Command-line --host/--port override environment settings

Design Decisions:
    - uvicorn served from inside the bootstrap (Server.serve on a pre-bound
      socket) instead of uvicorn.run: binding is a bootstrap phase of its own
"""

import argparse
import asyncio
import logging

from streamgate.bootstrap import build_bootstrapper
from streamgate.config import SettingsLoadError, load_settings
from streamgate.core.errors import ListenerBindError, StorageConnectionError
from streamgate.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="streamgate HTTP/WebSocket gateway")
    parser.add_argument("--host", dest="host", type=str, help="Override the listen host")
    parser.add_argument("--port", dest="port", type=int, help="Override the listen port")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Load settings, run the bootstrap sequence, and serve until interrupted.

    Raises:
        SystemExit: With status 1 on invalid configuration or a fatal bootstrap error.
    """
    args = parse_args(argv)
    overrides = {key: value for key, value in (("host", args.host), ("port", args.port))
                 if value is not None}
    try:
        settings = load_settings(**overrides)
    except SettingsLoadError as e:
        setup_logging()
        logger.critical(str(e))
        raise SystemExit(1)

    setup_logging(settings.log_level, settings.log_format)
    bootstrapper = build_bootstrapper(settings)
    try:
        asyncio.run(bootstrapper.run())
    except (StorageConnectionError, ListenerBindError) as e:
        logger.critical(
            f"Fatal bootstrap error: {e.message}",
            extra={"error_code": e.code, "phase": bootstrapper.phase.value},
        )
        raise SystemExit(1)
    except KeyboardInterrupt:
        logger.info("streamgate interrupted, shutting down")


if __name__ == "__main__":
    main()
