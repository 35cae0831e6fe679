"""Directory index handler."""

import logging
import os
import urllib.parse
from typing import Iterator

from minihttpd.domain.correlation_id import CorrelationLoggerAdapter
from minihttpd.domain.http_types import HttpRequest, Status
from minihttpd.domain.mime_types import MimeTypeResolver
from minihttpd.domain.response_builders import (
    HTML_CONTENT_TYPE,
    listing_entry,
    listing_epilogue,
    listing_prologue,
    streaming_response,
)
from minihttpd.handlers.error_handler import handle_error
from minihttpd.pipeline.io import send_response
from minihttpd.transport.context import WorkerContext

BROWSE_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("minihttpd.handlers.browse"), {}
)


def list_directory(path: str) -> list[str]:
    """Return directory entries sorted by name, with ``..`` but without ``.``."""
    return sorted([os.pardir, *os.listdir(path)])


def entry_webpath(uri: str, name: str) -> str:
    """Join the request URI and an entry name into a link target."""
    separator = "" if uri.endswith("/") else "/"
    return f"{uri}{separator}{urllib.parse.quote(name, errors='surrogateescape')}"


def _render_listing(
    uri: str, entries: list[str], mime_types: MimeTypeResolver
) -> Iterator[bytes]:
    yield listing_prologue(uri)
    for name in entries:
        webpath = entry_webpath(uri, name)
        thumbnail = webpath if mime_types.is_image(name) else None
        yield listing_entry(webpath, name, thumbnail)
    yield listing_epilogue()


def handle_browse_request(request: HttpRequest, context: WorkerContext) -> Status:
    """List a directory as HTML, one ``<li>`` per entry.

    Entries are written to the connection as they are rendered. Image
    entries get a thumbnail next to their link.
    """
    connection = request.connection
    try:
        entries = list_directory(request.path)
    except OSError as error:
        BROWSE_LOGGER.warning(
            "Unable to list directory",
            extra={
                "event": "directory_unreadable",
                "path": request.path,
                "error_type": type(error).__name__,
            },
        )
        return handle_error(connection, Status.NOT_FOUND, context.config)

    try:
        send_response(
            connection,
            streaming_response(
                Status.OK,
                HTML_CONTENT_TYPE,
                _render_listing(request.uri, entries, context.mime_types),
            ),
        )
    except OSError as error:
        BROWSE_LOGGER.error(
            "Directory listing aborted",
            extra={
                "event": "listing_write_failed",
                "path": request.path,
                "error_type": type(error).__name__,
            },
        )
        return Status.INTERNAL_SERVER_ERROR

    BROWSE_LOGGER.info(
        "Directory listed",
        extra={
            "event": "directory_listed",
            "path": request.path,
            "entries": len(entries),
        },
    )
    return Status.OK
