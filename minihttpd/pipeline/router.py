"""Request dispatch by filesystem type."""

import logging
import os
import stat

from minihttpd.domain.correlation_id import CorrelationLoggerAdapter
from minihttpd.domain.http_types import HttpRequest, Status
from minihttpd.domain.sandbox import resolve_request_path
from minihttpd.handlers.cgi_handler import handle_cgi_request
from minihttpd.handlers.directory_handler import handle_browse_request
from minihttpd.handlers.error_handler import handle_error
from minihttpd.handlers.file_handler import handle_file_request
from minihttpd.pipeline.io import MalformedRequest, parse_request
from minihttpd.transport.connection import Connection
from minihttpd.transport.context import WorkerContext

ROUTER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("minihttpd.pipeline.router"), {}
)


def dispatch_request(request: HttpRequest, context: WorkerContext) -> Status:
    """Route a resolved request to the handler matching its file type.

    Directories are listed, executable regular files run as CGI, readable
    regular files are streamed. Anything else, including a failed ``stat``,
    is an internal server error.
    """
    try:
        mode = os.stat(request.path).st_mode
    except OSError as error:
        ROUTER_LOGGER.error(
            "Unable to stat request path",
            extra={
                "event": "stat_failed",
                "path": request.path,
                "error_type": type(error).__name__,
            },
        )
        return handle_error(
            request.connection, Status.INTERNAL_SERVER_ERROR, context.config
        )

    if stat.S_ISDIR(mode):
        handler_name, handler = "browse", handle_browse_request
    elif stat.S_ISREG(mode) and os.access(request.path, os.X_OK):
        handler_name, handler = "cgi", handle_cgi_request
    elif stat.S_ISREG(mode) and os.access(request.path, os.R_OK):
        handler_name, handler = "file", handle_file_request
    else:
        ROUTER_LOGGER.warning(
            "Request path is not servable",
            extra={"event": "unservable_path", "path": request.path},
        )
        return handle_error(
            request.connection, Status.INTERNAL_SERVER_ERROR, context.config
        )

    if ROUTER_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ROUTER_LOGGER.debug(
            "Dispatching request",
            extra={"event": "dispatch", "handler": handler_name, "path": request.path},
        )
    return handler(request, context)


def handle_request(connection: Connection, context: WorkerContext) -> Status:
    """Parse, resolve and dispatch one request read from ``connection``."""
    try:
        request = parse_request(connection)
    except MalformedRequest as error:
        ROUTER_LOGGER.warning(
            "Malformed request received",
            extra={
                "event": "malformed_request",
                "client": connection.peer,
                "error_type": str(error),
            },
        )
        return handle_error(connection, Status.BAD_REQUEST, context.config)

    ROUTER_LOGGER.info(
        "Request line parsed",
        extra={
            "event": "request_parsed",
            "method": request.method,
            "uri": request.uri,
            "query": request.query,
        },
    )

    request.path = resolve_request_path(context.config.root_path, request.uri)
    if request.path is None:
        ROUTER_LOGGER.info(
            "Request path not found",
            extra={"event": "path_not_found", "uri": request.uri},
        )
        return handle_error(connection, Status.NOT_FOUND, context.config)

    return dispatch_request(request, context)
