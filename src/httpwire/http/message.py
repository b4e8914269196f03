"""
=============================================================================
HTTP MESSAGE FRAMER
=============================================================================

Parses and serializes the HEAD of an HTTP/1.1 message: the start line and
the header block. The same code handles requests and responses because
both share one shape on the wire.

=============================================================================
MESSAGE HEAD ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        MESSAGE HEAD                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  REQUEST                          RESPONSE                           │
    │                                                                      │
    │  GET /index.html HTTP/1.1\r\n     HTTP/1.1 404 Not Found\r\n         │
    │  ─┬─ ─────┬───── ────┬───         ────┬─── ─┬─ ────┬────             │
    │   │       │          │                │     │      │                 │
    │  field 1  field 2  field 3         field 1 field 2 field 3           │
    │  method   target   version         version status  reason            │
    │                                                                      │
    │  Host: localhost\r\n              Content-Type: text/plain\r\n       │
    │  User-Agent: httpwire/1.0\r\n     Content-Length: 9\r\n              │
    │  \r\n                             \r\n                               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The start line is split on the first two runs of spaces or tabs, so a
reason phrase may itself contain spaces ("Not Found"). Any other byte,
including NBSP or a control character, belongs to the field it sits in.

=============================================================================
PARSING RULES
=============================================================================

1. Lines end with CRLF. A bare LF is tolerated.
2. Fewer than three start-line fields       → MalformedStartLine
3. Header line without ':'                  → MalformedHeader
4. Header line starting with whitespace     → MalformedHeader
   (obsolete line folding is NOT supported)
5. Stream ends before the empty line        → TruncatedHeaders
6. Stream ends before the first byte        → ConnectionClosed

Header bytes are decoded as ISO-8859-1, which maps every byte to exactly
one character. That keeps parse → serialize lossless for any input.

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .errors import (
    ConnectionClosed,
    MalformedHeader,
    MalformedStartLine,
    TruncatedHeaders,
)
from .headers import Headers, HeaderSource
from .status_codes import HTTPStatus


HTTP_VERSION = "HTTP/1.1"
HEADER_ENCODING = "iso-8859-1"

# Upper bounds on what a peer may send in the head section
MAX_LINE_LENGTH = 64 * 1024
MAX_HEADERS = 100

# Only SP and HTAB separate start-line fields; other whitespace is data
START_LINE_SEPARATOR = re.compile(r"[ \t]+")


@dataclass
class MessageHead:
    """
    Structured start line + headers of one HTTP message.

    start_line holds the three raw fields exactly as they appear on the
    wire. The properties below give them names depending on direction:

        request:  (method,  target, version)
        response: (version, status, reason)
    """

    start_line: Tuple[str, str, str]
    headers: Headers = field(default_factory=Headers)

    # =========================================================================
    # CONSTRUCTORS
    # =========================================================================

    @classmethod
    def request(
        cls,
        method: str,
        target: str,
        headers: HeaderSource = None,
        version: str = HTTP_VERSION,
    ) -> "MessageHead":
        """Build a request head: METHOD SP target SP HTTP/1.1"""
        return cls((method, target, version), Headers(headers))

    @classmethod
    def response(
        cls,
        status: int,
        reason: Optional[str] = None,
        headers: HeaderSource = None,
        version: str = HTTP_VERSION,
    ) -> "MessageHead":
        """
        Build a response head: HTTP/1.1 SP status SP reason

        The reason phrase defaults to the standard phrase for the status.
        """
        if reason is None:
            try:
                reason = HTTPStatus(status).phrase
            except ValueError:
                reason = "Unknown"
        return cls((version, str(int(status)), reason), Headers(headers))

    # =========================================================================
    # START LINE ACCESSORS
    # =========================================================================

    @property
    def is_response(self) -> bool:
        """A status line starts with the protocol version."""
        return self.start_line[0].startswith("HTTP/")

    @property
    def method(self) -> str:
        return self.start_line[0]

    @property
    def target(self) -> str:
        return self.start_line[1]

    @property
    def version(self) -> str:
        return self.start_line[0] if self.is_response else self.start_line[2]

    @property
    def status(self) -> int:
        """Numeric status code of a response head."""
        code = self.start_line[1]
        if len(code) != 3 or not code.isdigit():
            raise MalformedStartLine(f"Invalid status code: {code!r}")
        return int(code)

    @property
    def reason(self) -> str:
        return self.start_line[2]

    @property
    def start_line_text(self) -> str:
        return " ".join(self.start_line)

    def to_bytes(self) -> bytes:
        return write_head(self)


# =============================================================================
# PARSING
# =============================================================================

def _read_line(stream, error: type) -> Optional[str]:
    """
    Read one line and strip its CRLF (or bare LF).

    Returns None if the stream is already exhausted. A line that ends
    without a newline means the peer went away mid-head.
    """
    raw = stream.readline(MAX_LINE_LENGTH + 1)
    if not raw:
        return None

    if not raw.endswith(b"\n"):
        if len(raw) > MAX_LINE_LENGTH:
            raise error(f"Line exceeds {MAX_LINE_LENGTH} bytes")
        raise TruncatedHeaders("Stream ended in the middle of a line")

    raw = raw[:-1]
    if raw.endswith(b"\r"):
        raw = raw[:-1]
    return raw.decode(HEADER_ENCODING)


def _split_start_line(line: str) -> Tuple[str, str, str]:
    fields = START_LINE_SEPARATOR.split(line.lstrip(" \t"), 2)

    # Only a status line may end in an empty field: "HTTP/1.1 200 "
    if len(fields) == 3 and not fields[2] and not fields[0].startswith("HTTP/"):
        raise MalformedStartLine(f"Invalid start line: {line!r}")

    if len(fields) < 3:
        raise MalformedStartLine(f"Invalid start line: {line!r}")
    return fields[0], fields[1], fields[2]


def _parse_header_line(line: str) -> Tuple[str, str]:
    if line[0] in (" ", "\t"):
        raise MalformedHeader("Obsolete header line folding is not supported")

    name, sep, value = line.partition(":")
    if not sep:
        raise MalformedHeader(f"Header line without ':': {line!r}")

    # RFC 7230: no whitespace allowed between field-name and colon
    if not name or name != name.strip():
        raise MalformedHeader(f"Invalid header name: {name!r}")

    return name, value.strip()


def parse_head(stream) -> MessageHead:
    """
    Parse a start line and header block from a byte stream.

    The stream only needs a readline(limit) method, so a Connection, a
    file opened in binary mode, or io.BytesIO all work. Exactly the head
    is consumed; the body (if any) is left unread in the stream.

    Raises:
        ConnectionClosed: Stream was empty.
        MalformedStartLine: Start line has fewer than three fields.
        MalformedHeader: Header line is invalid.
        TruncatedHeaders: Stream ended before the terminating blank line.
    """
    line = _read_line(stream, MalformedStartLine)
    if line is None:
        raise ConnectionClosed("Connection closed before the start line")

    start_line = _split_start_line(line)
    headers = Headers()

    while True:
        line = _read_line(stream, MalformedHeader)
        if line is None:
            raise TruncatedHeaders("Stream ended before the end of the headers")
        if line == "":
            break

        if len(headers) >= MAX_HEADERS:
            raise MalformedHeader(f"More than {MAX_HEADERS} header lines")

        name, value = _parse_header_line(line)
        headers[name] = value

    return MessageHead(start_line, headers)


# =============================================================================
# SERIALIZATION
# =============================================================================

def write_head(head: MessageHead) -> bytes:
    """
    Serialize a head to wire bytes.

        <start line>\\r\\n
        Name: value\\r\\n        (insertion order)
        \\r\\n

    Only produces bytes; writing them (and the body) is the caller's job.
    """
    lines = [head.start_line_text]
    for name, value in head.headers.items():
        lines.append(f"{name}: {value}")
    lines.append("")
    lines.append("")

    try:
        return "\r\n".join(lines).encode(HEADER_ENCODING)
    except UnicodeEncodeError as e:
        raise MalformedHeader(f"Header text is not ISO-8859-1: {e}") from e
