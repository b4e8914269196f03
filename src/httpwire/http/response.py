"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and writes them to a connection with the right
framing. Bodies can be in-memory bytes or any iterable of byte blocks
(e.g. a file being read 8 KB at a time), so large files are streamed
instead of loaded.

=============================================================================
WHAT GOES ON THE WIRE
=============================================================================

    HTTP/1.1 200 OK\\r\\n                     ← status line
    Content-Type: text/html; charset=utf-8\\r\\n  ← handler's Content-Type
    Content-Length: 12\\r\\n                  ← computed from the body
    Allow: GET, POST, OPTIONS\\r\\n           ← other handler headers
    X-Server: httpwire\\r\\n                  ← default headers last
    \\r\\n
    Hello world\\n                           ← body

Default headers are applied to every response but never override a
header the handler set itself.

BODY FRAMING
────────────

    body is bytes                     → Content-Length: len(body)
    body is iterable + known length   → Content-Length: length
    body is iterable, length unknown  → Transfer-Encoding: chunked
    status 204 / 304                  → no framing header, no body

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from .body import Framing, ProgressCallback, write_body
from .headers import Headers, HeaderSource
from .message import HTTP_VERSION, MessageHead
from .status_codes import HTTPStatus


Body = Union[bytes, Iterable[bytes]]

# Responses that must never carry a body
_BODYLESS_STATUSES = {HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED}


@dataclass
class HTTPResponse:
    """
    A response waiting to be sent.

    Handlers return one of these; the dispatcher calls send() on it.

        Handler returns        head() + framing           send()
        HTTPResponse   ─────►  MessageHead        ─────►  sink.write(head)
                               Framing.fixed(12)          body blocks
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Headers = field(default_factory=Headers)
    body: Body = b""
    content_length: Optional[int] = None
    version: str = HTTP_VERSION

    def __post_init__(self):
        if not isinstance(self.headers, Headers):
            self.headers = Headers(self.headers)

    @property
    def status_line(self) -> str:
        return f"{self.version} {int(self.status)} {HTTPStatus(self.status).phrase}"

    @property
    def framing(self) -> Framing:
        if self.status in _BODYLESS_STATUSES:
            return Framing.none()
        if isinstance(self.body, (bytes, bytearray)):
            return Framing.fixed(len(self.body))
        if self.content_length is not None:
            return Framing.fixed(self.content_length)
        return Framing.chunked()

    def head(self, default_headers: HeaderSource = None) -> MessageHead:
        """
        Assemble the final head in wire order.

        Content-Type, then the framing header, then the handler's other
        headers, then any default header the handler did not set.
        """
        headers = Headers()

        content_type = self.headers.get("Content-Type")
        if content_type is not None:
            headers["Content-Type"] = content_type

        framing = self.framing
        if framing.is_fixed:
            headers["Content-Length"] = str(framing.length)
        elif framing.is_chunked:
            headers["Transfer-Encoding"] = "chunked"

        for name, value in self.headers.items():
            if name not in headers:
                headers[name] = value

        if default_headers:
            for name, value in default_headers.items():
                headers.setdefault(name, value)

        return MessageHead.response(self.status, headers=headers, version=self.version)

    def _blocks(self) -> Iterable[bytes]:
        if isinstance(self.body, (bytes, bytearray)):
            return [bytes(self.body)] if self.body else []
        return self.body

    def send(
        self,
        sink,
        default_headers: HeaderSource = None,
        progress: Optional[ProgressCallback] = None,
    ) -> int:
        """
        Write head and body to `sink` (anything with write(bytes)).

        Returns the number of body bytes written. A streamed body that has
        a close() method (a generator, an open file) is closed afterwards,
        whether or not the write succeeded.
        """
        framing = self.framing
        try:
            sink.write(self.head(default_headers).to_bytes())
            if not framing.has_body and not framing.is_fixed:
                return 0
            return write_body(sink, framing, self._blocks(), progress)
        finally:
            close = getattr(self.body, "close", None)
            if close is not None:
                close()

    def to_bytes(self, default_headers: HeaderSource = None) -> bytes:
        """Serialize an in-memory response in one go (tests, error paths)."""
        chunks = []

        class _Collector:
            write = chunks.append

        self.send(_Collector(), default_headers)
        return b"".join(chunks)


class ResponseBuilder:
    """
    Fluent builder for responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .content_type("text/plain")
            .body("hello")
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers = Headers()
        self._body: Body = b""
        self._content_length: Optional[int] = None

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: HeaderSource) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """In-memory body; strings are UTF-8 encoded."""
        self._body = body.encode("utf-8") if isinstance(body, str) else bytes(body)
        self._content_length = None
        return self

    def text(self, text: str, content_type: str = "text/plain") -> "ResponseBuilder":
        self.content_type(content_type)
        return self.body(text)

    def stream(self, blocks: Iterable[bytes], length: Optional[int] = None) -> "ResponseBuilder":
        """
        Streamed body. With a length it is sent with Content-Length,
        without one it is sent chunked.
        """
        self._body = blocks
        self._content_length = length
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
            content_length=self._content_length,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok(body: Union[str, bytes] = b"", content_type: Optional[str] = None) -> HTTPResponse:
    builder = ResponseBuilder().status(HTTPStatus.OK).body(body)
    if content_type:
        builder.content_type(content_type)
    return builder.build()


def no_content() -> HTTPResponse:
    """204: success, no body, no Content-Length."""
    return ResponseBuilder().status(HTTPStatus.NO_CONTENT).build()


def error_response(status: HTTPStatus, message: Optional[str] = None) -> HTTPResponse:
    """
    Short plain-text error response.

    The text is informational only; clients must act on the status code.
    """
    status = HTTPStatus(status)
    return (ResponseBuilder()
        .status(status)
        .text(f"{message or status.phrase}\n")
        .build())


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    return error_response(HTTPStatus.BAD_REQUEST, message)


def not_found(message: str = "Not Found") -> HTTPResponse:
    return error_response(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(allowed_methods: Iterable[str]) -> HTTPResponse:
    """405 with the Allow header RFC 7231 asks for."""
    response = error_response(HTTPStatus.METHOD_NOT_ALLOWED, "Method Not Allowed")
    response.headers["Allow"] = ", ".join(allowed_methods)
    return response
