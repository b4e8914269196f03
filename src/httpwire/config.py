"""
=============================================================================
CONFIGURATION
=============================================================================

Dataclasses for the server and client settings, plus the loaders that
fill them from the environment or a properties file.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m httpwire serve --port 3000                      │
    │                                                                      │
    │   2. Properties file                                                │
    │      └── python -m httpwire serve --config server.properties       │
    │                                                                      │
    │   3. Default values (in these dataclasses)                         │
    │                                                                      │
    │   ServerConfig.from_env() is available to embedders that prefer    │
    │   environment variables; the CLI does not read them.               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

PROPERTIES FILE FORMAT
──────────────────────

    # server.properties
    port=8080
    directory=./public
    header.X-Powered-By=httpwire
    header.Cache-Control=no-store

Every `header.<Name>` key becomes a default header sent on every response.

=============================================================================
"""

import configparser
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Union

from . import __version__


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")

HEADER_PREFIX = "header."
_PROPERTIES_SECTION = "properties"


def parse_header_option(text: str) -> tuple[str, str]:
    """
    Split a "Name: Value" command-line header.

        >>> parse_header_option("X-Trace: abc")
        ('X-Trace', 'abc')
    """
    name, sep, value = text.partition(":")
    if not sep or not name.strip():
        raise ValueError(f"Header must look like 'Name: Value', got {text!r}")
    return name.strip(), value.strip()


def read_properties(path: Union[str, Path]) -> Dict[str, str]:
    """
    Read a Java-style .properties file into a plain dict.

    configparser needs a section header, so one is prepended. Keys keep
    their case and '%' is not interpolated.
    """
    parser = configparser.ConfigParser(
        interpolation=None,
        comment_prefixes=("#", "!"),
        delimiters=("=", ":"),
    )
    parser.optionxform = str
    text = Path(path).read_text(encoding="utf-8")
    parser.read_string(f"[{_PROPERTIES_SECTION}]\n{text}", source=str(path))
    return dict(parser.items(_PROPERTIES_SECTION))


@dataclass
class ServerConfig:
    """
    Server settings.

    NETWORK
    - host, port (0 lets the OS choose), backlog, buffer_size, timeout

    CONTENT
    - root_dir: directory GET requests are served from
    - default_headers: added to every response; handlers' own headers win

    LOGGING
    - log_level, log_format ("text" or "json" access log lines)
    """

    host: str = "127.0.0.1"
    port: int = 8080
    root_dir: str = "."
    default_headers: Mapping[str, str] = field(default_factory=dict)

    backlog: int = 128
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0

    log_level: str = "INFO"
    log_format: str = "text"

    server_name: Optional[str] = None
    """When set, sent as a Server header on every response."""

    def frozen_default_headers(self) -> Mapping[str, str]:
        """
        Read-only snapshot of the default headers.

        Taken once when the server is built; later changes to this config
        do not reach connections already being served.
        """
        headers = dict(self.default_headers)
        if self.server_name:
            headers.setdefault("Server", self.server_name)
        return MappingProxyType(headers)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        HTTP_HOST       bind address (default: 127.0.0.1)
        HTTP_PORT       port (default: 8080)
        HTTP_ROOT       served directory (default: .)
        HTTP_TIMEOUT    socket read timeout in seconds (default: 30)
        HTTP_LOG_LEVEL  logging level (default: INFO)
        """
        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            root_dir=os.getenv("HTTP_ROOT", "."),
            timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
        )

    @classmethod
    def from_properties(
        cls,
        path: Union[str, Path],
        base: Optional["ServerConfig"] = None,
    ) -> "ServerConfig":
        """
        Overlay a properties file onto `base` (or the defaults).

        Recognised keys: port, directory, host, timeout, and header.<Name>.
        Unknown keys are ignored.
        """
        config = base or cls()
        properties = read_properties(path)

        changes = {}
        if "port" in properties:
            changes["port"] = int(properties["port"])
        if "directory" in properties:
            changes["root_dir"] = properties["directory"]
        if "host" in properties:
            changes["host"] = properties["host"]
        if "timeout" in properties:
            changes["timeout"] = float(properties["timeout"])

        headers = dict(config.default_headers)
        for key, value in properties.items():
            if key.startswith(HEADER_PREFIX) and len(key) > len(HEADER_PREFIX):
                headers[key[len(HEADER_PREFIX):]] = value
        changes["default_headers"] = headers

        return replace(config, **changes)

    def validate(self) -> None:
        """Fail fast at startup instead of on the first request."""
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}")

        if not Path(self.root_dir).is_dir():
            raise ValueError(f"root_dir is not a directory: {self.root_dir}")

        for name, value in self.default_headers.items():
            if not name or any(c in name for c in "\r\n:"):
                raise ValueError(f"Invalid default header name: {name!r}")
            if "\r" in value or "\n" in value:
                raise ValueError(f"Invalid value for default header {name}")


@dataclass
class ClientConfig:
    """Client settings."""

    timeout: Optional[float] = 30.0
    buffer_size: int = 8192
    user_agent: str = f"httpwire/{__version__}"
    show_progress: bool = True

    def validate(self) -> None:
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")
