"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps a raw socket with the buffered byte-stream API the framer and the
body transfer code read from: readline(limit) and read(n), plus write()
for the outgoing direction.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries. A peer that sends

        GET /index.html HTTP/1.1\\r\\nHost: x\\r\\n\\r\\n

may be received as

        recv() → "GET /ind"
        recv() → "ex.html HTTP/1.1\\r\\nHo"
        recv() → "st: x\\r\\n\\r\\n"

So we keep a small buffer of received-but-unconsumed bytes:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       READ BUFFERING                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   readline()   recv() into _buffer until it holds a \\n,            │
    │                then hand out everything up to and including it     │
    │                                                                      │
    │   read(n)      hand out buffered bytes first; only when the        │
    │                buffer is empty, do ONE recv() of at most n bytes   │
    │                                                                      │
    │   Leftover bytes stay in _buffer for the next call, so the head     │
    │   parser and the body reader can share one connection without       │
    │   losing or duplicating a single byte.                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The buffer never holds more than one line plus one recv() worth of data,
which is what keeps large bodies out of memory.

=============================================================================
TIMEOUTS
=============================================================================

Every socket read is bounded by `timeout` seconds (30 by default). When it
fires the read raises ConnectionTimeout and the connection is abandoned.
There is no other way to cancel an in-flight read.

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..http.errors import ConnectionTimeout


logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT = 30.0
DEFAULT_BUFFER_SIZE = 8192


class ConnectionState(Enum):
    """
    Connection lifecycle states.

    One request, one response, then close: there is no keep-alive state.
    """
    NEW = "new"                # Just accepted or connected
    READING = "reading"        # Reading a message head or body
    WRITING = "writing"        # Sending data
    CLOSING = "closing"        # Shutdown sequence in progress
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    A connected socket with buffered reads.

    Used on both sides: the server wraps accepted sockets, the client wraps
    the socket it connects with Connection.open().

    Attributes:
        socket: The underlying TCP socket.
        address: Peer (ip, port) tuple.
        id: Short identifier for log lines.
        state: Current lifecycle state.
        bytes_received / bytes_sent: Traffic counters.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    bytes_received: int = 0
    bytes_sent: int = 0

    buffer_size: int = DEFAULT_BUFFER_SIZE
    timeout: Optional[float] = DEFAULT_TIMEOUT

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @classmethod
    def open(
        cls,
        host: str,
        port: int,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> "Connection":
        """
        Connect to host:port and wrap the socket.

        Raises:
            ConnectionTimeout: The connect itself timed out.
            OSError: Connection refused, unknown host, ...
        """
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except socket.timeout as e:
            raise ConnectionTimeout(f"Timed out connecting to {host}:{port}") from e
        return cls(socket=sock, address=(host, port), timeout=timeout, buffer_size=buffer_size)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def age(self) -> float:
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def _recv(self, size: Optional[int] = None) -> bytes:
        """
        One socket.recv() call.

        Returns empty bytes if the peer closed (or reset) the connection.

        Raises:
            ConnectionTimeout: Nothing arrived within `timeout` seconds.
        """
        try:
            data = self.socket.recv(size or self.buffer_size)
        except socket.timeout as e:
            raise ConnectionTimeout(
                f"No data from {self.client_ip}:{self.client_port} within {self.timeout}s"
            ) from e
        except (ConnectionResetError, BrokenPipeError):
            return b""
        self.bytes_received += len(data)
        return data

    def readline(self, limit: int = -1) -> bytes:
        """
        Read up to and including the next b"\\n".

        Stops early at `limit` bytes (if limit >= 0) or at end of stream,
        in which case the returned bytes do not end with a newline.
        """
        self.state = ConnectionState.READING

        while True:
            newline = self._buffer.find(b"\n")
            if newline >= 0:
                end = newline + 1
                break
            if 0 <= limit <= len(self._buffer):
                end = limit
                break
            chunk = self._recv()
            if not chunk:
                end = len(self._buffer)
                break
            self._buffer += chunk

        if 0 <= limit < end:
            end = limit
        line, self._buffer = self._buffer[:end], self._buffer[end:]
        return line

    def read(self, size: int = -1) -> bytes:
        """
        Read at most `size` bytes; empty bytes means end of stream.

        Buffered bytes are returned first. Otherwise exactly one recv() is
        made, so a call never blocks waiting for more than the peer sent.
        size < 0 reads until end of stream.
        """
        self.state = ConnectionState.READING

        if size < 0:
            parts = [self._buffer]
            self._buffer = b""
            while True:
                chunk = self._recv()
                if not chunk:
                    return b"".join(parts)
                parts.append(chunk)

        if size == 0:
            return b""

        if self._buffer:
            data, self._buffer = self._buffer[:size], self._buffer[size:]
            return data

        return self._recv(min(size, self.buffer_size))

    # =========================================================================
    # WRITING
    # =========================================================================

    def write(self, data: bytes) -> int:
        """
        Send all of `data`.

        sendall() loops until every byte is handed to the kernel; plain
        send() may stop after a partial write.

        Raises:
            ConnectionTimeout: The peer stopped reading.
            OSError: The connection broke.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except socket.timeout as e:
            raise ConnectionTimeout(f"Send to {self.client_ip} timed out") from e
        self.bytes_sent += len(data)
        return len(data)

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self, drain: bool = True):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR): send FIN, the peer sees end of stream
        2. drain anything the peer still sends, so unread request bytes
           do not turn our close into a RST that destroys the response
        3. close(): release the file descriptor

        With drain=False step 2 is skipped and unread bytes are dropped.
        The client does this to abandon a response body it will not
        download, however large it is.

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        if drain:
            try:
                self.socket.settimeout(0.5)
                while self.socket.recv(1024):
                    pass
            except OSError:
                pass  # Includes socket.timeout

        try:
            self.socket.close()
        except OSError:
            pass

        self._buffer = b""
        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Connection closed "
            f"(in={self.bytes_received}B out={self.bytes_sent}B {self.age * 1000:.1f}ms)"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
