"""Listener — binds the configured address and serves the app with uvicorn.

Invariants:
    - bind() either returns a bound socket or raises ListenerBindError
    - serve() binds before logging the readiness banner; no banner on failure
    - uvicorn never re-binds: it serves on the socket bound here
"""

import logging
import socket

import uvicorn
from fastapi import FastAPI

from streamgate.core.errors import ListenerBindError

logger = logging.getLogger(__name__)


class Listener:
    def __init__(self, host: str, port: int, environment: str, log_level: str = "info"):
        self.host = host
        self.port = port
        self.environment = environment
        self.log_level = log_level.lower()
        self.server: uvicorn.Server | None = None

    def bind(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self.port))
        except OSError as e:
            sock.close()
            raise ListenerBindError(self.host, self.port, e.strerror or str(e))
        sock.set_inheritable(True)
        return sock

    def log_banner(self, port: int) -> None:
        logger.info("=================================")
        logger.info(f"======= ENV: {self.environment} =======")
        logger.info(
            f"App listening on the port {port}",
            extra={"environment": self.environment, "port": port},
        )
        logger.info("=================================")

    async def serve(self, app: FastAPI, sock: socket.socket | None = None) -> None:
        """Serve `app` until uvicorn exits. Binds first unless given a bound socket."""
        if sock is None:
            sock = self.bind()
        bound_port = sock.getsockname()[1]
        config = uvicorn.Config(
            app,
            log_config=None,
            log_level=self.log_level,
            access_log=False,
            lifespan="off",
        )
        self.server = uvicorn.Server(config)
        self.log_banner(bound_port)
        try:
            await self.server.serve(sockets=[sock])
        finally:
            sock.close()
