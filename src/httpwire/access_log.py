"""
=============================================================================
ACCESS LOG
=============================================================================

One log line per request the server answered, on the "httpwire.access"
logger so it can be routed or silenced separately from diagnostics.

    TEXT FORMAT (default):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 127.0.0.1 - - [10/Jun/2024:10:55:36 +0000] "GET /a.txt" 200 12 1.52ms│
    │ ─────────   ────────────────────────────  ──────────── ─── ── ──────│
    │ client IP   timestamp                     method/target st  body dur │
    └─────────────────────────────────────────────────────────────────────┘

    JSON FORMAT:
    {"connection_id": "a1b2c3d4", "method": "GET", "target": "/a.txt",
     "client_ip": "127.0.0.1", "status_code": 200, "body_bytes": 12, ...}

Requests that never got a response (peer vanished, read timeout) are not
logged here; the dispatcher logs them as warnings instead.

=============================================================================
"""

import json
import logging
import time
from dataclasses import asdict, dataclass
from typing import Optional


logger = logging.getLogger("httpwire.access")

LOG_FORMATS = ("text", "json")


@dataclass
class RequestLog:
    """Structured access log entry."""

    connection_id: str
    method: str
    target: str
    client_ip: str
    user_agent: str
    status_code: int
    body_bytes: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.target}" {self.status_code} '
            f'{self.body_bytes} {self.duration_ms:.2f}ms'
        )


class AccessLog:
    """
    Writes RequestLog entries in the configured format.

        access_log = AccessLog(log_format="json")
        access_log.record(conn_id, "GET", "/", "127.0.0.1", "curl/8", 200, 12, started)
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        if log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {log_format!r}")
        self.log_format = log_format
        self.log_level = log_level

    def record(
        self,
        connection_id: str,
        method: str,
        target: str,
        client_ip: str,
        user_agent: Optional[str],
        status_code: int,
        body_bytes: int,
        started_at: float,
    ) -> RequestLog:
        """Build the entry for a finished request and emit it."""
        entry = RequestLog(
            connection_id=connection_id,
            method=method,
            target=target,
            client_ip=client_ip,
            user_agent=user_agent or "-",
            status_code=int(status_code),
            body_bytes=body_bytes,
            duration_ms=(time.time() - started_at) * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())
        return entry
