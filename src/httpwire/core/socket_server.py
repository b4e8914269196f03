"""
=============================================================================
LISTENING SOCKET AND ACCEPT LOOP
=============================================================================

Owns the listening TCP socket. Everything HTTP-specific happens elsewhere:
this module only turns incoming TCP connections into Connection objects
and hands each one to a callback.

    ┌───────────────────────┐
    │   Listening Socket    │ ◄── created once in start()
    │   bound to host:port  │
    └───────────┬───────────┘
                │ accept()
                ▼
    ┌───────────────────────┐     ┌───────────────────────┐
    │  Connection #1        │     │  Connection #2        │ ...
    │  (own socket, own     │     │                       │
    │   read buffer)        │     │                       │
    └───────────────────────┘     └───────────────────────┘

=============================================================================
SOCKET OPTIONS
=============================================================================

    SO_REUSEADDR   restart immediately, even with sockets in TIME_WAIT
    SO_REUSEPORT   where the platform has it
    TCP_NODELAY    responses go out without Nagle buffering
    timeout 1.0s   accept() wakes up every second to check the running
                   flag, so shutdown() takes effect without a connection

PORT 0
──────

Binding to port 0 lets the OS pick a free port. `address` reports the
port actually bound, which is how tests find the server.

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM trigger a graceful shutdown. Python only
allows installing signal handlers from the main thread, so a server
started from any other thread (e.g. a test fixture) skips this step and
must be stopped with shutdown().

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Optional, Tuple

from .connection import Connection


logger = logging.getLogger(__name__)

ACCEPT_POLL_INTERVAL = 1.0


class SocketServer:
    """
    TCP accept loop.

        server = SocketServer("127.0.0.1", 8080)
        server.start(handle_connection)   # blocks until shutdown()

    Every accepted socket is wrapped in a Connection (with the configured
    read timeout and buffer size) and passed to the handler, which must
    return quickly: the next accept() only happens after it does.
    """

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 8080,
        backlog: int = 128,
        timeout: Optional[float] = 30.0,
        buffer_size: int = 8192,
    ):
        self.host = host
        self.port = port
        self.backlog = backlog
        self.timeout = timeout
        self.buffer_size = buffer_size

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready_event = threading.Event()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The (host, port) actually bound.

        Before start() this is the configured address, which may have port 0.
        """
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.host, self.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
        except (AttributeError, OSError):
            pass  # Not available on Windows

        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop.

        Blocks until shutdown() is called (from a signal handler or another
        thread).

        Raises:
            OSError: The address could not be bound.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.host, self.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.host}:{self.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.backlog)

        self._running = True
        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.buffer_size,
                timeout=self.timeout,
            )
            connection_handler(conn)

    def shutdown(self):
        """Stop accepting connections. Idempotent, callable from any thread."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._ready_event.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. True if it is."""
        return self._ready_event.wait(timeout)
