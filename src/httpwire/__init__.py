"""
=============================================================================
HTTPWIRE - HTTP/1.1 Message Engine Over Raw Sockets
=============================================================================

A minimal HTTP/1.1 implementation with no HTTP library underneath: a
static-file server and a download client that share one wire-protocol
core.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   CLIENT (client.py)                        SERVER (server.py)       │
    │      │                                          │                    │
    │      │  build head ──► write_head ──────────►  parse_head            │
    │      │  write_body(fixed)  ─────────────────►  read_body             │
    │      │                                          │ dispatch by method │
    │      │  parse_head  ◄──────────────────────── write_head             │
    │      │  read_body   ◄──────────────────────── write_body             │
    │      │  (progress → ProgressBar)                (file streamed)      │
    │                                                                      │
    │              shared core: http/message.py + http/body.py             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    httpwire/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m httpwire)
    ├── server.py            # HTTPServer: thread per connection
    ├── client.py            # HTTPClient, ProgressBar
    ├── config.py            # ServerConfig / ClientConfig
    ├── template.py          # RequestTemplate files
    ├── access_log.py        # Access log lines
    ├── core/
    │   ├── socket_server.py # Listening socket + accept loop
    │   └── connection.py    # Buffered socket stream
    ├── http/
    │   ├── message.py       # Start line + headers: parse / serialize
    │   ├── body.py          # Content-Length and chunked bodies
    │   ├── headers.py       # Case-insensitive ordered headers
    │   ├── request.py       # Server-side request
    │   ├── response.py      # Response builder
    │   ├── errors.py        # Exception taxonomy
    │   ├── status_codes.py  # HTTPStatus
    │   └── mime_types.py    # Extension → Content-Type
    └── handlers/
        ├── dispatcher.py    # One request cycle per connection
        ├── methods.py       # GET / POST / OPTIONS / 405
        └── files.py         # Target → file under the root

=============================================================================
QUICK START
=============================================================================

    from httpwire import HTTPServer, ServerConfig
    HTTPServer(ServerConfig(port=8080, root_dir="./public")).run()

    from httpwire import HTTPClient, ProgressBar
    client = HTTPClient("localhost", 8080)
    response = client.send_request("GET", "/index.html",
                                   output="index.html", progress=ProgressBar())

=============================================================================
"""

__version__ = "1.0.0"

from .client import ClientResponse, HTTPClient, ProgressBar, default_output_path, execute_template
from .config import ClientConfig, ServerConfig
from .server import HTTPServer, setup_logging
from .template import RequestTemplate, TemplateError

__all__ = [
    "HTTPServer",
    "ServerConfig",
    "HTTPClient",
    "ClientConfig",
    "ClientResponse",
    "ProgressBar",
    "RequestTemplate",
    "TemplateError",
    "default_output_path",
    "execute_template",
    "setup_logging",
    "__version__",
]
