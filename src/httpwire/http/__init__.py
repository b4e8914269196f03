"""
=============================================================================
HTTP/1.1 WIRE PROTOCOL
=============================================================================

Everything between raw bytes and structured messages lives here. The
server and the client both build on the same pieces.

=============================================================================
MODULE COMPONENTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ HEADERS (headers.py)                                                │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Ordered, case-insensitive name → value map, last write wins         │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ MESSAGE FRAMER (message.py)                                         │
    │ ─────────────────────────────────────────────────────────────────── │
    │ parse_head(stream) → MessageHead      write_head(head) → bytes      │
    │                                                                      │
    │ Input:   b"GET / HTTP/1.1\r\nHost: x\r\n\r\n"                      │
    │ Output:  MessageHead(("GET", "/", "HTTP/1.1"), {"Host": "x"})       │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ BODY TRANSFER (body.py)                                             │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Content-Length and chunked bodies, read and written in blocks,      │
    │ with progress callbacks. Never holds a whole body in memory.        │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST / RESPONSE (request.py, response.py)                        │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Server-side request view and fluent response builder               │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ SUPPORT (errors.py, status_codes.py, mime_types.py)                 │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Error taxonomy, status phrases, extension → Content-Type            │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .body import (
    Framing,
    FramingKind,
    Progress,
    copy_body,
    drain_body,
    open_body_writer,
    read_body,
    resolve_framing,
    write_body,
)
from .errors import (
    ConnectionClosed,
    ConnectionTimeout,
    HTTPError,
    InvalidTarget,
    MalformedChunk,
    MalformedHeader,
    MalformedStartLine,
    MethodNotAllowed,
    ResourceNotFound,
    TruncatedHeaders,
    UnexpectedEof,
)
from .headers import Headers
from .message import MessageHead, parse_head, write_head
from .mime_types import get_content_type, get_mime_type
from .request import HTTPRequest, read_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    bad_request,
    error_response,
    method_not_allowed,
    no_content,
    not_found,
    ok,
)
from .status_codes import HTTPStatus

__all__ = [
    # Headers and heads
    "Headers",
    "MessageHead",
    "parse_head",
    "write_head",

    # Bodies
    "Framing",
    "FramingKind",
    "Progress",
    "resolve_framing",
    "read_body",
    "copy_body",
    "drain_body",
    "open_body_writer",
    "write_body",

    # Requests and responses
    "HTTPRequest",
    "read_request",
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "no_content",
    "error_response",
    "bad_request",
    "not_found",
    "method_not_allowed",

    # Errors
    "HTTPError",
    "MalformedStartLine",
    "MalformedHeader",
    "TruncatedHeaders",
    "ConnectionClosed",
    "UnexpectedEof",
    "MalformedChunk",
    "InvalidTarget",
    "ResourceNotFound",
    "MethodNotAllowed",
    "ConnectionTimeout",

    # Support
    "HTTPStatus",
    "get_mime_type",
    "get_content_type",
]
