"""
=============================================================================
REQUEST DISPATCHER
=============================================================================

Runs exactly one request/response cycle on an accepted connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     PER-CONNECTION STATE MACHINE                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   AWAIT_REQUEST_LINE ──► PARSE_HEADERS ──► DISPATCH                  │
    │           │                    │              │                      │
    │           │ malformed          │ malformed    ├──► HANDLE ───┐       │
    │           ▼                    ▼              │              │       │
    │      SEND_RESPONSE (400) ◄─────┘              └──► REJECT ───┤       │
    │           │                                        (405)     ▼       │
    │           │                                           SEND_RESPONSE  │
    │           ▼                                                  │       │
    │         CLOSED ◄─────────────────────────────────────────────┘       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

There is no keep-alive: after one response the caller closes the
connection, whatever happened.

=============================================================================
FAILURE HANDLING
=============================================================================

    Peer sent nothing                 → close silently
    Read timed out                    → no response, warning logged
    HTTPError before the response     → best-effort error response
    HTTPError / OSError while sending → nothing more can be sent; logged
    Any other exception               → logged with traceback

Nothing ever propagates out of run(): a bad request must not take down
the thread that serves it, let alone the server.

=============================================================================
"""

import logging
import time
from enum import Enum
from typing import Mapping, Optional

from ..access_log import AccessLog
from ..core.connection import Connection
from ..http.errors import ConnectionClosed, ConnectionTimeout, HTTPError
from ..http.request import HTTPRequest, read_request
from ..http.response import HTTPResponse, error_response
from ..http.status_codes import HTTPStatus
from .methods import HandlerContext, handle_not_allowed, select_handler


logger = logging.getLogger(__name__)

# Error statuses a server may answer with; anything else becomes 400
_ERROR_STATUSES = {HTTPStatus.BAD_REQUEST, HTTPStatus.NOT_FOUND, HTTPStatus.METHOD_NOT_ALLOWED}


class DispatchState(Enum):
    AWAIT_REQUEST_LINE = "await_request_line"
    PARSE_HEADERS = "parse_headers"
    DISPATCH = "dispatch"
    HANDLE = "handle"
    REJECT_METHOD = "reject_method"
    SEND_RESPONSE = "send_response"
    CLOSED = "closed"


class RequestDispatcher:
    """
    One request cycle on one connection.

        dispatcher = RequestDispatcher(conn, context, default_headers)
        dispatcher.run()
        dispatcher.status     # status sent, or None if nothing was sent

    The default headers mapping is only ever read.
    """

    def __init__(
        self,
        conn: Connection,
        context: HandlerContext,
        default_headers: Optional[Mapping[str, str]] = None,
        access_log: Optional[AccessLog] = None,
    ):
        self.conn = conn
        self.context = context
        self.default_headers = default_headers or {}
        self.access_log = access_log

        self.state = DispatchState.AWAIT_REQUEST_LINE
        self.request: Optional[HTTPRequest] = None
        self.status: Optional[int] = None
        self.body_bytes = 0
        self._started_at = time.time()

    def run(self) -> Optional[int]:
        """Serve one request. Returns the status sent, or None."""
        try:
            response = self._receive_and_handle()
            if response is not None:
                self._send(response)
        except ConnectionTimeout as e:
            logger.warning(f"[{self.conn.id}] {e}; closing without a response")
        except (HTTPError, OSError) as e:
            logger.warning(f"[{self.conn.id}] Failed while sending response: {e}")
        except Exception:
            logger.exception(f"[{self.conn.id}] Unhandled error while serving request")
        finally:
            self.state = DispatchState.CLOSED

        return self.status

    def _receive_and_handle(self) -> Optional[HTTPResponse]:
        # read_request covers both AWAIT_REQUEST_LINE and PARSE_HEADERS
        try:
            self.request = read_request(self.conn)
        except ConnectionClosed:
            logger.debug(f"[{self.conn.id}] Peer closed before sending a request")
            return None
        except ConnectionTimeout:
            raise
        except HTTPError as e:
            logger.info(f"[{self.conn.id}] Bad request from {self.conn.client_ip}: {e}")
            return self._error_for(e)

        self.state = DispatchState.DISPATCH
        handler = select_handler(self.request.method)

        if handler is handle_not_allowed:
            self.state = DispatchState.REJECT_METHOD
        else:
            self.state = DispatchState.HANDLE
        logger.debug(f"[{self.conn.id}] {self.request.method} {self.request.target} → {self.state.value}")

        try:
            return handler(self.request, self.context)
        except ConnectionTimeout:
            raise
        except HTTPError as e:
            logger.info(f"[{self.conn.id}] {self.request.method} {self.request.target} failed: {e}")
            return self._error_for(e)

    def _error_for(self, error: HTTPError) -> HTTPResponse:
        status = error.status_code if error.status_code in _ERROR_STATUSES else HTTPStatus.BAD_REQUEST
        if status == HTTPStatus.METHOD_NOT_ALLOWED:
            return handle_not_allowed(self.request, self.context)
        return error_response(status)

    def _send(self, response: HTTPResponse):
        self.state = DispatchState.SEND_RESPONSE
        self.status = int(response.status)
        self.body_bytes = response.send(self.conn, self.default_headers)
        self._log_access()

    def _log_access(self):
        if self.access_log is None:
            return

        if self.request is not None:
            method, target = self.request.method, self.request.target
            user_agent = self.request.headers.get("User-Agent")
        else:
            method, target, user_agent = "-", "-", None

        self.access_log.record(
            connection_id=self.conn.id,
            method=method,
            target=target,
            client_ip=self.conn.client_ip,
            user_agent=user_agent,
            status_code=self.status,
            body_bytes=self.body_bytes,
            started_at=self._started_at,
        )

