"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together: a SocketServer accepts connections, each one
gets its own thread, and that thread runs a RequestDispatcher once and
closes the connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer.accept() ──► Connection                               │
    │                                 │                                    │
    │                                 │ threading.Thread (one per conn)    │
    │                                 ▼                                    │
    │                     with conn:                                       │
    │                         RequestDispatcher(conn, ...).run()           │
    │                     ── socket closed on every exit path ──          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The accept loop never waits for a connection to be processed: it starts
the worker thread and goes straight back to accept().

=============================================================================
SHARED STATE
=============================================================================

Workers share exactly two things, both read-only after construction:

    default headers   MappingProxyType snapshot of config.default_headers
    handler context   frozen dataclass (root directory, block size)

=============================================================================
"""

import logging
import threading
from pathlib import Path
from typing import Optional, Set, Tuple

from .access_log import AccessLog
from .config import ServerConfig
from .core import Connection, SocketServer
from .handlers import HandlerContext, RequestDispatcher


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO"):
    """Configure root logging once, in the format every httpwire log uses."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    logging.getLogger("httpwire").setLevel(numeric_level)


class HTTPServer:
    """
    Static-file HTTP/1.1 server, one thread per connection.

        server = HTTPServer(ServerConfig(port=8080, root_dir="./public"))
        server.run()                  # blocks until Ctrl+C / SIGTERM

    From another thread (tests, embedding):

        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        server.wait_until_ready(5)
        host, port = server.address
        ...
        server.shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self.default_headers = self.config.frozen_default_headers()
        self.context = HandlerContext(
            root_dir=Path(self.config.root_dir).resolve(),
            block_size=self.config.buffer_size,
        )
        self.access_log = AccessLog(log_format=self.config.log_format)

        self._socket_server = SocketServer(
            host=self.config.host,
            port=self.config.port,
            backlog=self.config.backlog,
            timeout=self.config.timeout,
            buffer_size=self.config.buffer_size,
        )

        self._workers: Set[threading.Thread] = set()
        self._workers_lock = threading.Lock()

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port even when configured with 0."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    def run(self):
        """Set up logging, then serve until interrupted."""
        setup_logging(self.config.log_level)
        logger.info(f"Serving {self.context.root_dir} on {self.config.host}:{self.config.port}")
        self.serve_forever()

    def serve_forever(self):
        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._join_workers(timeout=self.config.timeout or 30.0)
            logger.info("Server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """Stop accepting connections. In-flight requests run to completion."""
        self._socket_server.shutdown()

    def _handle_connection(self, conn: Connection):
        worker = threading.Thread(
            target=self._process_connection,
            args=(conn,),
            name=f"httpwire-conn-{conn.id}",
            daemon=True,
        )
        with self._workers_lock:
            self._workers.add(worker)
        worker.start()

    def _process_connection(self, conn: Connection):
        try:
            with conn:
                RequestDispatcher(
                    conn,
                    self.context,
                    default_headers=self.default_headers,
                    access_log=self.access_log,
                ).run()
        finally:
            with self._workers_lock:
                self._workers.discard(threading.current_thread())

    def _join_workers(self, timeout: float):
        with self._workers_lock:
            workers = list(self._workers)
        if workers:
            logger.info(f"Waiting for {len(workers)} connection(s) to finish...")
        for worker in workers:
            worker.join(timeout)
