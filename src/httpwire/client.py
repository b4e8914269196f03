"""
=============================================================================
HTTP CLIENT
=============================================================================

Sends one request per connection and streams the response body to a
file (or any binary sink), reporting progress as it goes.

=============================================================================
ONE REQUEST, STEP BY STEP
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │  1. connect                Connection.open(host, port, timeout)      │
    │  2. send head              GET /file.bin HTTP/1.1                    │
    │                            Host: example.com:8080                    │
    │                            User-Agent: httpwire/1.0.0   ← defaults   │
    │                            X-Trace: abc                 ← caller     │
    │                            Content-Length: 9            ← if body    │
    │  3. send body              exactly Content-Length bytes              │
    │  4. parse response head    parse_head(conn)                          │
    │  5. gate on status         non-2xx → stop, body NOT downloaded       │
    │  6. resolve framing        chunked / Content-Length / none           │
    │  7. stream body → sink     block by block, progress after each       │
    │  8. close                                                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every step happens strictly after the previous one; there is no
pipelining. Any failure aborts the request and propagates to the caller.
A partially written output file is left on disk as it is.

=============================================================================
"""

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterable, Optional, TextIO, Tuple, Union
from urllib.parse import urlsplit

from . import __version__
from .core.connection import DEFAULT_BUFFER_SIZE, DEFAULT_TIMEOUT, Connection
from .http.body import Framing, ProgressCallback, copy_body, drain_body, resolve_framing, write_body
from .http.errors import MalformedStartLine
from .http.headers import Headers, HeaderSource
from .http.message import MessageHead, parse_head
from .http.status_codes import is_success
from .template import RequestTemplate


logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = f"httpwire/{__version__}"
DEFAULT_OUTPUT_NAME = "index.html"

RequestBody = Union[str, bytes, Path, None]
Output = Union[str, Path, BinaryIO, None]

# Statuses whose responses never carry a body, whatever the headers say
_BODYLESS_STATUSES = {204, 304}


# =============================================================================
# PROGRESS BAR
# =============================================================================

class ProgressBar:
    """
    Text progress bar, usable directly as a progress callback.

        [=========================>                        ] 50.0% (512/1024 bytes)

    When the total is unknown (a chunked body still arriving) only the
    byte count is shown. A newline is printed once the transfer is done.
    """

    def __init__(self, stream: Optional[TextIO] = None, width: int = 50):
        self.stream = stream or sys.stdout
        self.width = width
        self.finished = False

    def render(self, so_far: int, total: Optional[int]) -> str:
        if total is None:
            return f"{so_far} bytes"

        fraction = so_far / total if total else 1.0
        filled = int(self.width * fraction)

        cells = []
        for i in range(self.width):
            if i < filled:
                cells.append("=")
            elif i == filled:
                cells.append(">")
            else:
                cells.append(" ")
        return f"[{''.join(cells)}] {fraction * 100:.1f}% ({so_far}/{total} bytes)"

    def __call__(self, so_far: int, total: Optional[int]) -> None:
        if self.finished:
            return
        self.stream.write("\r" + self.render(so_far, total))
        if total is not None and so_far >= total:
            self.stream.write("\n")
            self.finished = True
        self.stream.flush()


# =============================================================================
# RESPONSE
# =============================================================================

@dataclass
class ClientResponse:
    """
    What came back for one request.

    Attributes:
        head: Parsed status line and headers.
        downloaded: True if the body was read (2xx responses only).
        bytes_received: Body bytes read; 0 when not downloaded.
        output: Where the body went, if it was written to a path.
    """

    head: MessageHead
    downloaded: bool = False
    bytes_received: int = 0
    output: Optional[Path] = None

    @property
    def status(self) -> int:
        return self.head.status

    @property
    def reason(self) -> str:
        return self.head.reason

    @property
    def headers(self) -> Headers:
        return self.head.headers

    @property
    def ok(self) -> bool:
        return is_success(self.status)

    def describe(self) -> str:
        """Status line and headers as they arrived, one per line."""
        lines = [self.head.start_line_text]
        lines.extend(f"{name}: {value}" for name, value in self.headers.items())
        return "\n".join(lines)


# =============================================================================
# CLIENT
# =============================================================================

class HTTPClient:
    """
    HTTP/1.1 client for one host.

        client = HTTPClient("localhost", 8080)
        response = client.send_request("GET", "/big.iso", output="big.iso",
                                       progress=ProgressBar())
        if not response.ok:
            print(response.status, response.reason)
    """

    def __init__(
        self,
        host: str,
        port: int = 80,
        default_headers: HeaderSource = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.buffer_size = buffer_size

        self.default_headers = Headers({"User-Agent": DEFAULT_USER_AGENT})
        self.default_headers.update(default_headers)

    @classmethod
    def from_url(cls, url: str, **kwargs) -> Tuple["HTTPClient", str]:
        """
        Client for the URL's host plus the request target to use.

        Raises:
            ValueError: Not an http:// URL with a host.
        """
        parts = urlsplit(url)
        if parts.scheme.lower() != "http":
            raise ValueError(f"Only http:// URLs are supported, got {url!r}")
        if not parts.hostname:
            raise ValueError(f"URL has no host: {url!r}")

        target = parts.path or "/"
        if parts.query:
            target = f"{target}?{parts.query}"
        return cls(parts.hostname, parts.port or 80, **kwargs), target

    @property
    def host_header(self) -> str:
        return self.host if self.port == 80 else f"{self.host}:{self.port}"

    def build_request_head(
        self,
        method: str,
        path: str,
        headers: HeaderSource = None,
        content_length: Optional[int] = None,
    ) -> MessageHead:
        """
        Request head in wire order: Host, default headers, caller headers,
        then Content-Length when a body follows. Caller headers replace
        defaults of the same name in place.
        """
        request_headers = Headers({"Host": self.host_header})
        request_headers.update(self.default_headers)
        request_headers.update(headers)
        if content_length is not None:
            request_headers["Content-Length"] = str(content_length)
        return MessageHead.request(method.upper(), path, request_headers)

    def _body_source(self, body: RequestBody) -> Tuple[Optional[int], Iterable[bytes]]:
        if body is None:
            return None, []
        if isinstance(body, Path):
            return body.stat().st_size, _iter_path(body, self.buffer_size)
        if isinstance(body, str):
            body = body.encode("utf-8")
        return len(body), [body] if body else []

    def send_request(
        self,
        method: str,
        path: str,
        headers: HeaderSource = None,
        body: RequestBody = None,
        output: Output = None,
        progress: Optional[ProgressCallback] = None,
    ) -> ClientResponse:
        """
        Send one request and consume the response.

        body:     str (UTF-8 encoded), bytes, or a Path streamed from disk.
        output:   path to write the body to (parent dirs are created), a
                  binary writable object, or None to read and discard it.
        progress: called as progress(bytes_so_far, total_or_None).

        Raises:
            ConnectionTimeout: Connect or a read exceeded the timeout.
            HTTPError subclasses: The response is not valid HTTP/1.1.
            OSError: Connection refused or broken.
        """
        content_length, blocks = self._body_source(body)
        head = self.build_request_head(method, path, headers, content_length)

        with Connection.open(self.host, self.port, self.timeout, self.buffer_size) as conn:
            logger.debug(f"[{conn.id}] {head.start_line_text} → {self.host}:{self.port}")

            conn.write(head.to_bytes())
            if content_length is not None:
                write_body(conn, Framing.fixed(content_length), blocks)

            response_head = parse_head(conn)
            if not response_head.is_response:
                raise MalformedStartLine(f"Not a status line: {response_head.start_line_text!r}")

            response = ClientResponse(head=response_head)
            status = response.status
            logger.debug(f"[{conn.id}] ← {response_head.start_line_text}")

            if not is_success(status):
                logger.info(f"{method} {path} → {status} {response.reason}; body not downloaded")
                conn.close(drain=False)
                return response

            if method.upper() == "HEAD" or status in _BODYLESS_STATUSES:
                framing = Framing.none()
            else:
                framing = resolve_framing(response_head.headers)

            response.bytes_received = self._receive_body(conn, framing, output, progress, response)
            response.downloaded = True
            return response

    def _receive_body(self, conn, framing, output, progress, response) -> int:
        if output is None:
            return drain_body(conn, framing, progress, self.buffer_size)

        if isinstance(output, (str, Path)):
            output_path = Path(output)
            if output_path.parent != Path("."):
                output_path.parent.mkdir(parents=True, exist_ok=True)
            response.output = output_path
            with open(output_path, "wb") as f:
                return copy_body(conn, framing, f, progress, self.buffer_size)

        return copy_body(conn, framing, output, progress, self.buffer_size)


def _iter_path(path: Path, block_size: int):
    with open(path, "rb") as f:
        while True:
            block = f.read(block_size)
            if not block:
                return
            yield block


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def default_output_path(url: str) -> str:
    """
    File name a download is saved under when none is given.

        >>> default_output_path("http://host/files/report.pdf")
        'report.pdf'
        >>> default_output_path("http://host/")
        'index.html'
    """
    name = urlsplit(url).path.rsplit("/", 1)[-1]
    return name or DEFAULT_OUTPUT_NAME


def execute_template(
    template: Union[str, Path, RequestTemplate],
    output: Output = None,
    progress: Optional[ProgressCallback] = None,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    default_headers: HeaderSource = None,
) -> ClientResponse:
    """Send a request template, loading it first when given a path."""
    if not isinstance(template, RequestTemplate):
        template = RequestTemplate.from_file(template)
    client, _ = HTTPClient.from_url(template.url, timeout=timeout, default_headers=default_headers)
    return client.send_request(
        template.method,
        template.path,
        headers=template.headers,
        body=template.body,
        output=output,
        progress=progress,
    )
