"""
=============================================================================
METHOD HANDLERS
=============================================================================

One function per supported method, chosen by a closed enum:

    ┌──────────┬──────────────────────────────────────────────────────────┐
    │ Method   │ Behaviour                                                │
    ├──────────┼──────────────────────────────────────────────────────────┤
    │ GET      │ serve the file the target resolves to, or 404            │
    │ POST     │ drain the body, log it, 200 + acknowledgement text       │
    │ OPTIONS  │ 204, default headers only, body never read               │
    │ anything │ 405 + Allow: GET, POST, OPTIONS                          │
    └──────────┴──────────────────────────────────────────────────────────┘

Handlers return an HTTPResponse and never write to the connection
themselves. Default headers are added when the response is sent.

=============================================================================
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Optional

from ..http.body import DEFAULT_BLOCK_SIZE
from ..http.mime_types import get_content_type
from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse,
    ResponseBuilder,
    method_not_allowed,
    no_content,
    not_found,
    ok,
)
from ..http.status_codes import HTTPStatus
from .files import lookup_file, open_file


logger = logging.getLogger(__name__)

POST_ACKNOWLEDGEMENT = "POST request successfully received."

# Longest POST body (in bytes) echoed to the log
POST_LOG_LIMIT = 1024


class SupportedMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    OPTIONS = "OPTIONS"

    @classmethod
    def lookup(cls, method: str) -> Optional["SupportedMethod"]:
        """Case-insensitive lookup; None for unsupported methods."""
        try:
            return cls(method.upper())
        except ValueError:
            return None


ALLOWED_METHODS = tuple(m.value for m in SupportedMethod)


@dataclass(frozen=True)
class HandlerContext:
    """Per-server state the handlers read. Shared by every connection."""

    root_dir: Path
    block_size: int = DEFAULT_BLOCK_SIZE


def handle_get(request: HTTPRequest, context: HandlerContext) -> HTTPResponse:
    info = lookup_file(context.root_dir, request.target)
    body = open_file(info, context.block_size)
    if body is None:
        logger.debug(f"GET {request.target}: not found")
        return not_found()

    return (ResponseBuilder()
        .status(HTTPStatus.OK)
        .content_type(get_content_type(info.path))
        .stream(body, length=info.size)
        .build())


def handle_post(request: HTTPRequest, context: HandlerContext) -> HTTPResponse:
    """
    Accept and acknowledge. The body is read to the end so the client
    is never left blocked on a send, but only its start is kept.
    """
    kept = bytearray()
    total = 0
    for block in request.body(block_size=context.block_size):
        total += len(block)
        if len(kept) < POST_LOG_LIMIT:
            kept += block[:POST_LOG_LIMIT - len(kept)]

    text = kept.decode("utf-8", errors="replace")
    if total > POST_LOG_LIMIT:
        text += f"... ({total} bytes)"
    logger.info(f"Received POST body: {text}")

    return ok(POST_ACKNOWLEDGEMENT, content_type="text/plain")


def handle_options(request: HTTPRequest, context: HandlerContext) -> HTTPResponse:
    return no_content()


def handle_not_allowed(request: HTTPRequest, context: HandlerContext) -> HTTPResponse:
    return method_not_allowed(ALLOWED_METHODS)


Handler = Callable[[HTTPRequest, HandlerContext], HTTPResponse]

HANDLERS: Dict[SupportedMethod, Handler] = {
    SupportedMethod.GET: handle_get,
    SupportedMethod.POST: handle_post,
    SupportedMethod.OPTIONS: handle_options,
}


def select_handler(method: str) -> Handler:
    """The handler for `method`, or the 405 handler."""
    supported = SupportedMethod.lookup(method)
    if supported is None:
        return handle_not_allowed
    return HANDLERS[supported]
