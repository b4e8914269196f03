"""
Unit tests for the buffered socket wrapper.
"""

import socket

import pytest

from httpwire.core.connection import Connection, ConnectionState
from httpwire.http.errors import ConnectionTimeout


class RecordingSocket:
    """Forwards to a real socket and counts recv() calls."""

    def __init__(self, sock: socket.socket):
        self._sock = sock
        self.recv_calls = 0

    def recv(self, size: int) -> bytes:
        self.recv_calls += 1
        return self._sock.recv(size)

    def __getattr__(self, name):
        return getattr(self._sock, name)


@pytest.fixture
def pair():
    left, right = socket.socketpair()
    yield RecordingSocket(left), right
    left.close()
    right.close()


def wrap(sock, timeout=2.0) -> Connection:
    return Connection(socket=sock, address=("127.0.0.1", 4242), timeout=timeout)


class TestConnection:

    def test_lifecycle_states(self, pair):
        sock, peer = pair
        conn = wrap(sock)
        assert conn.state is ConnectionState.NEW

        peer.sendall(b"line\r\n")
        assert conn.readline() == b"line\r\n"
        assert conn.state is ConnectionState.READING

        conn.write(b"reply")
        assert conn.state is ConnectionState.WRITING
        assert peer.recv(16) == b"reply"

        conn.close()
        assert conn.state is ConnectionState.CLOSED
        conn.close()

    def test_state_names(self):
        assert [state.name for state in ConnectionState] == [
            "NEW", "READING", "WRITING", "CLOSING", "CLOSED",
        ]

    def test_readline_and_read_share_buffer(self, pair):
        sock, peer = pair
        conn = wrap(sock)
        peer.sendall(b"head\nbody bytes")
        peer.shutdown(socket.SHUT_WR)

        assert conn.readline() == b"head\n"
        assert conn.read(4) == b"body"
        assert conn.read() == b" bytes"
        assert conn.read(10) == b""
        assert conn.bytes_received == 15

    def test_readline_limit(self, pair):
        sock, peer = pair
        conn = wrap(sock)
        peer.sendall(b"abcdef\n")

        assert conn.readline(3) == b"abc"
        assert conn.readline() == b"def\n"

    def test_read_timeout(self, pair):
        sock, _ = pair
        conn = wrap(sock, timeout=0.2)

        with pytest.raises(ConnectionTimeout):
            conn.readline()

    def test_close_drains_unread_bytes(self, pair):
        sock, peer = pair
        conn = wrap(sock)
        peer.sendall(b"x" * 5000)
        peer.shutdown(socket.SHUT_WR)

        conn.close()

        assert sock.recv_calls > 0
        assert peer.recv(16) == b""

    def test_close_without_draining(self, pair):
        sock, peer = pair
        conn = wrap(sock)
        peer.sendall(b"x" * 5000)

        conn.close(drain=False)

        assert sock.recv_calls == 0
        assert conn.state is ConnectionState.CLOSED
