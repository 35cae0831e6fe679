"""Error page handler."""

import functools
import logging
from typing import BinaryIO, Iterator

from minihttpd.bootstrap.config import ServerConfig
from minihttpd.domain.correlation_id import CorrelationLoggerAdapter
from minihttpd.domain.http_types import Status
from minihttpd.domain.response_builders import (
    HTML_CONTENT_TYPE,
    head_only_response,
    status_page_response,
    streaming_response,
)
from minihttpd.pipeline.io import send_response
from minihttpd.transport.connection import Connection

ERROR_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("minihttpd.handlers.error"), {}
)

CHUNK_SIZE = 8192


def _read_chunks(handle: BinaryIO) -> Iterator[bytes]:
    return iter(functools.partial(handle.read, CHUNK_SIZE), b"")


def _send_not_found_page(connection: Connection, config: ServerConfig) -> None:
    try:
        page = open(config.not_found_page, "rb")
    except OSError as error:
        ERROR_LOGGER.warning(
            "Unable to open not found page",
            extra={
                "event": "not_found_page_missing",
                "path": config.not_found_page,
                "error_type": type(error).__name__,
            },
        )
        send_response(connection, head_only_response(Status.NOT_FOUND))
        return

    with page:
        send_response(
            connection,
            streaming_response(Status.NOT_FOUND, HTML_CONTENT_TYPE, _read_chunks(page)),
        )


def handle_error(
    connection: Connection, status: Status, config: ServerConfig
) -> Status:
    """Write an HTML error response for ``status`` and return ``status``.

    404 responses stream the configured not-found page; when that page cannot
    be opened only the status line and content type are sent. Every other
    status gets a small inline page. Write failures are logged, never raised.
    """
    ERROR_LOGGER.info(
        "HTTP error", extra={"event": "http_error", "status_code": int(status)}
    )
    try:
        if status == Status.NOT_FOUND:
            _send_not_found_page(connection, config)
        else:
            send_response(connection, status_page_response(status))
    except OSError as error:
        ERROR_LOGGER.warning(
            "Unable to write error response",
            extra={
                "event": "error_write_failed",
                "status_code": int(status),
                "error_type": type(error).__name__,
            },
        )
    return status
