"""
=============================================================================
HTTP ERROR TAXONOMY
=============================================================================

Every failure the wire engine can detect has its own exception class.
All of them derive from HTTPError, which carries the HTTP status code the
server should answer with when the failure happens on its side of the
connection.

    ┌──────────────────────┬────────┬──────────────────────────────────────┐
    │  Exception           │ Status │  Raised when                         │
    ├──────────────────────┼────────┼──────────────────────────────────────┤
    │  MalformedStartLine  │  400   │  start line has < 3 fields           │
    │  MalformedHeader     │  400   │  header line without ':' etc.        │
    │  TruncatedHeaders    │  400   │  stream ends before the blank line   │
    │  ConnectionClosed    │  400   │  stream ends before the start line   │
    │  UnexpectedEof       │  400   │  body shorter than declared          │
    │  MalformedChunk      │  400   │  bad hex size or missing CRLF        │
    │  InvalidTarget       │  400   │  request path without leading '/'    │
    │  ResourceNotFound    │  404   │  GET target missing or a directory   │
    │  MethodNotAllowed    │  405   │  method outside GET/POST/OPTIONS     │
    │  ConnectionTimeout   │  408   │  socket read exceeded its timeout    │
    └──────────────────────┴────────┴──────────────────────────────────────┘

PROPAGATION
───────────

Server side: the dispatcher converts any HTTPError into a best-effort
error response on the same connection and then closes it.

Client side: errors abort the current request and propagate to the
caller unchanged. Nothing is retried.

=============================================================================
"""

from typing import Optional


class HTTPError(Exception):
    """
    Base class for protocol-level failures.

    Carries the status code that should be returned to the peer, the same
    way a parse error carries its status in a request parser.
    """

    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class MalformedStartLine(HTTPError):
    """The request or status line could not be split into three fields."""


class MalformedHeader(HTTPError):
    """A header line has no ':' separator, an empty name, or a bad value."""


class TruncatedHeaders(HTTPError):
    """The stream ended before the blank line that terminates the headers."""


class ConnectionClosed(TruncatedHeaders):
    """The peer closed the stream before sending any part of a message."""


class UnexpectedEof(HTTPError, EOFError):
    """The body ended before the declared number of bytes was delivered."""


class MalformedChunk(HTTPError):
    """A chunk size line is not hex, or a chunk is not followed by CRLF."""


class InvalidTarget(HTTPError):
    """The request target does not start with '/'."""


class ResourceNotFound(HTTPError):
    status_code = 404


class MethodNotAllowed(HTTPError):
    status_code = 405


class ConnectionTimeout(HTTPError, TimeoutError):
    """A socket read blocked longer than the connection timeout."""

    status_code = 408
