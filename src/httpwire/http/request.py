"""
=============================================================================
HTTP REQUEST
=============================================================================

An incoming request: a parsed head plus a body that is still sitting,
unread, in the connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   GET /docs/a%20b.txt?x=1 HTTP/1.1                                   │
    │   ─┬─ ──────────┬────────                                            │
    │    │            │                                                    │
    │    │            ├── target  "/docs/a%20b.txt?x=1"   (raw)            │
    │    │            ├── path    "/docs/a b.txt"          (decoded)        │
    │    │            └── query   "x=1"                    (ignored)        │
    │    └── method   "GET"       (upper-cased)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The body is exposed as an iterator of blocks (see body.py) rather than
bytes, so a handler that does not care about it can drain it without
ever holding it in memory.

=============================================================================
"""

import re
from dataclasses import dataclass
from typing import Iterator, Optional
from urllib.parse import unquote

from .body import DEFAULT_BLOCK_SIZE, Framing, ProgressCallback, drain_body, read_body, resolve_framing
from .errors import InvalidTarget, MalformedStartLine
from .headers import Headers
from .message import MessageHead, parse_head


VERSION_PATTERN = re.compile(r"HTTP/\d\.\d")


@dataclass
class HTTPRequest:
    """
    A request whose head has been parsed.

    Attributes:
        head: Start line and headers.
        framing: How the body is delimited.
        stream: Where the body bytes are read from.
    """

    head: MessageHead
    framing: Framing
    stream: object = None

    _body_consumed: bool = False

    @property
    def method(self) -> str:
        """Method token, upper-cased: methods dispatch case-insensitively."""
        return self.head.method.upper()

    @property
    def target(self) -> str:
        return self.head.target

    @property
    def path(self) -> str:
        """Percent-decoded target without the query string."""
        return unquote(self.target.split("?", 1)[0])

    @property
    def query(self) -> str:
        _, _, query = self.target.partition("?")
        return query

    @property
    def version(self) -> str:
        return self.head.version

    @property
    def headers(self) -> Headers:
        return self.head.headers

    @property
    def content_length(self) -> Optional[int]:
        return self.framing.length if self.framing.is_fixed else None

    def body(
        self,
        progress: Optional[ProgressCallback] = None,
        block_size: int = DEFAULT_BLOCK_SIZE,
    ) -> Iterator[bytes]:
        """
        Iterate over the body blocks. Can only be consumed once.
        """
        if self._body_consumed:
            raise RuntimeError("Request body already consumed")
        self._body_consumed = True
        return read_body(self.stream, self.framing, progress, block_size)

    def discard_body(self) -> int:
        """Read and drop whatever body is left; returns the bytes dropped."""
        if self._body_consumed:
            return 0
        self._body_consumed = True
        return drain_body(self.stream, self.framing)

    def __repr__(self) -> str:
        return f"HTTPRequest({self.method} {self.target})"


def read_request(stream) -> HTTPRequest:
    """
    Parse a request head from `stream` and resolve its body framing.

    Raises:
        ConnectionClosed: The peer sent nothing at all.
        MalformedStartLine / MalformedHeader / TruncatedHeaders:
            The head is not valid HTTP/1.1, or the version is not HTTP/x.y.
        InvalidTarget: The target does not start with "/".
    """
    head = parse_head(stream)

    if not VERSION_PATTERN.fullmatch(head.version):
        raise MalformedStartLine(f"Invalid HTTP version: {head.version!r}")

    if not head.target.startswith("/"):
        raise InvalidTarget(f"Request target must start with '/': {head.target!r}")

    return HTTPRequest(head=head, framing=resolve_framing(head.headers), stream=stream)
