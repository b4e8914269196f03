"""
=============================================================================
REQUEST HANDLERS
=============================================================================

    dispatcher.py   RequestDispatcher: one request cycle per connection
    methods.py      GET / POST / OPTIONS handlers and the 405 fallback
    files.py        target → file under the root directory

=============================================================================
"""

from .dispatcher import DispatchState, RequestDispatcher
from .files import FileBody, FileInfo, lookup_file, open_file
from .methods import (
    ALLOWED_METHODS,
    HandlerContext,
    SupportedMethod,
    handle_get,
    handle_not_allowed,
    handle_options,
    handle_post,
    select_handler,
)

__all__ = [
    "RequestDispatcher",
    "DispatchState",
    "HandlerContext",
    "SupportedMethod",
    "ALLOWED_METHODS",
    "select_handler",
    "handle_get",
    "handle_post",
    "handle_options",
    "handle_not_allowed",
    "FileInfo",
    "lookup_file",
    "open_file",
    "FileBody",
]
