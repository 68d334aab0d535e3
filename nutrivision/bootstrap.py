# -*- coding: utf-8 -*-
"""
Process startup: database probe, then a listening socket.

    init -> connecting-db -> db-ready | db-fallback
         -> binding -> listening | port-retry(n) -> ... -> fatal

A failed database probe degrades to in-memory storage. A busy or forbidden
port moves to the next one while `next < 65536` and `next < initial + 10`;
anything else ends the process with status 1.
"""

from __future__ import annotations

import errno
import logging
import socket
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from .app_db import DatabaseStatus, try_connect
from .config import DEFAULT_PORT, Settings, settings as default_settings

log = logging.getLogger(__name__)

PORT_CEILING = 65536
_RETRYABLE_ERRNOS = (errno.EADDRINUSE, errno.EACCES)


class BootstrapState(str, Enum):
    init = "init"
    connecting_db = "connecting-db"
    db_ready = "db-ready"
    db_fallback = "db-fallback"
    binding = "binding"
    port_retry = "port-retry"
    listening = "listening"
    fatal = "fatal"


class BootstrapError(Exception):
    """Startup cannot continue; the entry point exits non-zero."""

    def __init__(self, message: str, *, port: Optional[int] = None) -> None:
        super().__init__(message)
        self.port = port


@dataclass
class BootstrapResult:
    database: DatabaseStatus
    sock: socket.socket
    port: int
    attempts: int


def bind_socket(host: str, port: int, backlog: int = 128) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(backlog)
    except OSError:
        sock.close()
        raise
    return sock


def parse_port(raw: object) -> int:
    try:
        port = int(str(raw).strip())
    except (TypeError, ValueError):
        port = -1
    if port < 0 or port >= PORT_CEILING:
        log.error("Invalid port number: %s. Port must be between 0 and 65535.", raw)
        log.error("Using default port %d...", DEFAULT_PORT)
        return DEFAULT_PORT
    return port


class ServerBootstrap:
    def __init__(
        self,
        cfg: Optional[Settings] = None,
        *,
        connect_db: Callable[..., DatabaseStatus] = try_connect,
        bind: Callable[[str, int], socket.socket] = bind_socket,
    ) -> None:
        self.cfg = cfg or default_settings
        self._connect_db = connect_db
        self._bind = bind
        self.state = BootstrapState.init
        self.history: List[BootstrapState] = [BootstrapState.init]
        self.attempted_ports: List[int] = []

    def _transition(self, state: BootstrapState) -> None:
        self.state = state
        self.history.append(state)

    def connect_database(self) -> DatabaseStatus:
        self._transition(BootstrapState.connecting_db)
        log.info("Attempting to connect to database at %s...", self.cfg.db_path)
        status = self._connect_db(self.cfg.db_path, timeout=self.cfg.db_timeout)
        if status.connected:
            self._transition(BootstrapState.db_ready)
            log.info("Database connection established successfully")
        else:
            self._transition(BootstrapState.db_fallback)
            log.warning("Database connection failed, server will continue with in-memory storage")
            log.warning("To enable persistence, set NUTRIVISION_DB_PATH to a writable location")
        return status

    def bind_listener(self, initial_port: int) -> socket.socket:
        """Bind the first free port in the retry window; raise BootstrapError otherwise."""
        port = initial_port
        limit = initial_port + max(1, self.cfg.port_attempts)
        while True:
            self._transition(BootstrapState.binding)
            self.attempted_ports.append(port)
            try:
                return self._bind(self.cfg.host, port)
            except OSError as exc:
                if exc.errno not in _RETRYABLE_ERRNOS:
                    self._transition(BootstrapState.fatal)
                    log.error("Server error on port %d: %s", port, exc)
                    raise BootstrapError(f"cannot bind port {port}: {exc}", port=port) from exc

                log.error("Port %d is already in use or permission denied.", port)
                next_port = port + 1
                if next_port < PORT_CEILING and next_port < limit:
                    self._transition(BootstrapState.port_retry)
                    log.warning("Trying alternative port %d...", next_port)
                    port = next_port
                    continue

                self._transition(BootstrapState.fatal)
                log.error("Could not find an available port. Please free up port %d or use a different port.", initial_port)
                log.error("You can set the PORT environment variable, e.g. PORT=5002")
                raise BootstrapError(f"no available port in {initial_port}..{port}", port=port) from exc

    def start(self) -> BootstrapResult:
        if self.cfg.jwt_secret_is_default:
            log.warning("NUTRIVISION_JWT_SECRET not set; using the development default")
        database = self.connect_database()
        initial_port = parse_port(self.cfg.port_raw)
        sock = self.bind_listener(initial_port)
        port = sock.getsockname()[1]
        self._transition(BootstrapState.listening)
        log.info("Server running on port %d", port)
        log.info("API available at http://%s:%d/api", self.cfg.host, port)
        if database.connected:
            log.info("Database: connected to %s", database.path)
        else:
            log.info("Database: using in-memory storage")
        return BootstrapResult(database=database, sock=sock, port=port, attempts=len(self.attempted_ports))


def serve(result: BootstrapResult, cfg: Optional[Settings] = None) -> None:
    import uvicorn

    from .api import create_app

    app = create_app(result.database, cfg)
    config = uvicorn.Config(app, log_level="info")
    server = uvicorn.Server(config)
    server.run(sockets=[result.sock])


def main() -> None:
    """Console entry point (used by pyproject [project.scripts])."""
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", stream=sys.stderr
    )
    cfg = default_settings
    bootstrap = ServerBootstrap(cfg)
    try:
        result = bootstrap.start()
    except BootstrapError as exc:
        log.error("Startup aborted: %s", exc)
        sys.exit(1)
    serve(result, cfg)


if __name__ == "__main__":
    main()
