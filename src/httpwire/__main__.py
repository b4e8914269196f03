"""
=============================================================================
COMMAND-LINE INTERFACE
=============================================================================

    # Serve the current directory on 127.0.0.1:8080
    python -m httpwire serve

    # Serve ./public on port 3000 with an extra header on every response
    python -m httpwire serve -p 3000 -d ./public --header "X-Powered-By: httpwire"

    # Settings from a properties file (command-line flags still win)
    python -m httpwire serve -c server.properties

    # Download a file, showing a progress bar
    python -m httpwire fetch http://localhost:8080/big.iso -o downloads/big.iso

    # POST some data
    python -m httpwire fetch http://localhost:8080/api -X POST -d '{"k":"v"}'

    # Replay a request template
    python -m httpwire fetch -t request.tmpl

=============================================================================
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .client import HTTPClient, ProgressBar, default_output_path, execute_template
from .config import ClientConfig, ServerConfig, parse_header_option
from .server import HTTPServer, setup_logging
from .template import RequestTemplate


LOG_LEVEL_CHOICES = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _header_list(values: Optional[List[str]]) -> dict:
    headers = {}
    for value in values or []:
        name, header_value = parse_header_option(value)
        headers[name] = header_value
    return headers


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="httpwire",
        description="Minimal HTTP/1.1 file server and download client over raw sockets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  httpwire serve -p 8080 -d ./public         # Serve a directory
  httpwire serve -c server.properties        # Settings from a file
  httpwire fetch http://localhost:8080/a.txt # Download a.txt
  httpwire fetch -t request.tmpl -o out.bin  # Replay a template
        """,
    )
    parser.add_argument("--version", "-v", action="version", version=f"httpwire {__version__}")

    subcommands = parser.add_subparsers(dest="command", required=True)

    # ─────────────────────────────────────────────────────────────────────
    # serve
    # ─────────────────────────────────────────────────────────────────────
    serve = subcommands.add_parser("serve", help="Serve files from a directory")
    serve.add_argument("--host", default=None, help="Host to bind to (default: 127.0.0.1)")
    serve.add_argument("--port", "-p", type=int, default=None, help="Port to listen on (default: 8080)")
    serve.add_argument("--directory", "-d", default=None, help="Directory to serve (default: .)")
    serve.add_argument("--config", "-c", default=None, help="Properties file with port/directory/header.* keys")
    serve.add_argument(
        "--header", "-H",
        action="append",
        metavar="'Name: Value'",
        help="Extra header sent on every response (repeatable)",
    )
    serve.add_argument("--log-level", "-l", choices=LOG_LEVEL_CHOICES, default="INFO")
    serve.add_argument("--log-format", choices=["text", "json"], default="text", help="Access log format")

    # ─────────────────────────────────────────────────────────────────────
    # fetch
    # ─────────────────────────────────────────────────────────────────────
    fetch = subcommands.add_parser("fetch", help="Send a request and download the response body")
    fetch.add_argument("url", nargs="?", help="http:// URL to request")
    fetch.add_argument("--method", "-X", default="GET", help="Request method (default: GET)")
    fetch.add_argument(
        "--header", "-H",
        action="append",
        metavar="'Name: Value'",
        help="Request header (repeatable)",
    )
    body = fetch.add_mutually_exclusive_group()
    body.add_argument("--data", "-d", help="Request body text")
    body.add_argument("--file", "-f", help="Send the contents of a file as the body")
    body.add_argument("--template", "-t", help="Request template file (method, URL, headers, body)")
    fetch.add_argument("--output", "-o", help="Where to save the body (default: name from the URL)")
    fetch.add_argument("--timeout", type=float, default=ClientConfig.timeout, help="Socket timeout in seconds")
    fetch.add_argument("--no-progress", action="store_true", help="Do not draw a progress bar")
    fetch.add_argument("--log-level", "-l", choices=LOG_LEVEL_CHOICES, default="WARNING")

    return parser


def serve_config(args: argparse.Namespace) -> ServerConfig:
    """Defaults, overlaid by the properties file, overlaid by flags."""
    config = ServerConfig()
    if args.config:
        config = ServerConfig.from_properties(args.config, base=config)

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.directory is not None:
        config.root_dir = args.directory

    headers = dict(config.default_headers)
    headers.update(_header_list(args.header))
    config.default_headers = headers

    config.log_level = args.log_level
    config.log_format = args.log_format
    return config


def run_serve(args: argparse.Namespace) -> int:
    server = HTTPServer(serve_config(args))
    server.run()
    return 0


def run_fetch(args: argparse.Namespace) -> int:
    setup_logging(args.log_level)
    client_config = ClientConfig(timeout=args.timeout, show_progress=not args.no_progress)
    client_config.validate()
    progress = ProgressBar() if client_config.show_progress else None
    headers = _header_list(args.header)

    if args.template:
        template = RequestTemplate.from_file(args.template)
        response = execute_template(
            template,
            output=args.output or default_output_path(template.url),
            progress=progress,
            timeout=client_config.timeout,
            default_headers=headers,
        )
    else:
        if not args.url:
            print("Error: a URL or --template is required", file=sys.stderr)
            return 2

        client, target = HTTPClient.from_url(
            args.url,
            timeout=client_config.timeout,
            buffer_size=client_config.buffer_size,
            default_headers={"User-Agent": client_config.user_agent},
        )
        body = Path(args.file) if args.file else args.data
        response = client.send_request(
            args.method,
            target,
            headers=headers,
            body=body,
            output=args.output or default_output_path(args.url),
            progress=progress,
        )

    print(response.describe())
    if not response.ok:
        print(f"Error: server responded with {response.status} {response.reason}", file=sys.stderr)
        return 1

    if response.output is not None:
        print(f"Saved {response.bytes_received} bytes to {response.output}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        if args.command == "serve":
            return run_serve(args)
        return run_fetch(args)
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        logging.getLogger("httpwire").debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
