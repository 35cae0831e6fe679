"""File serving handlers."""

import logging
from typing import BinaryIO, Iterator

from minihttpd.domain.correlation_id import CorrelationLoggerAdapter
from minihttpd.domain.http_types import HttpRequest, Status
from minihttpd.domain.response_builders import streaming_response
from minihttpd.handlers.error_handler import handle_error
from minihttpd.pipeline.io import send_response
from minihttpd.transport.context import WorkerContext

FILE_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("minihttpd.handlers.file"), {}
)

CHUNK_SIZE = 65536


def stream_file(file_handle: BinaryIO, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Yield file contents in fixed-size chunks until end of file."""
    while True:
        chunk = file_handle.read(chunk_size)
        if not chunk:
            break
        if FILE_LOGGER.logger.isEnabledFor(logging.DEBUG):
            FILE_LOGGER.debug(
                "File chunk read",
                extra={"event": "file_chunk_read", "bytes_out": len(chunk)},
            )
        yield chunk


def handle_file_request(request: HttpRequest, context: WorkerContext) -> Status:
    """Stream a regular file with the content type from the mime table.

    The file is opened before anything is written, so an open failure still
    produces a clean 500 page. Once the status line is out, a read or write
    failure can only cut the response short; it is logged and reported as
    INTERNAL_SERVER_ERROR.
    """
    connection = request.connection
    try:
        file_handle = open(request.path, "rb")
    except OSError as error:
        FILE_LOGGER.error(
            "Unable to open file",
            extra={
                "event": "file_open_failed",
                "path": request.path,
                "error_type": type(error).__name__,
            },
        )
        return handle_error(connection, Status.INTERNAL_SERVER_ERROR, context.config)

    mimetype = context.mime_types.resolve(request.path)
    if FILE_LOGGER.logger.isEnabledFor(logging.DEBUG):
        FILE_LOGGER.debug(
            "File read started",
            extra={"event": "file_read_started", "path": request.path},
        )

    with file_handle:
        try:
            bytes_out = send_response(
                connection,
                streaming_response(Status.OK, mimetype, stream_file(file_handle)),
            )
        except OSError as error:
            FILE_LOGGER.error(
                "File streaming aborted",
                extra={
                    "event": "file_stream_failed",
                    "path": request.path,
                    "error_type": type(error).__name__,
                    "errno": error.errno,
                },
            )
            return Status.INTERNAL_SERVER_ERROR

    FILE_LOGGER.info(
        "File sent",
        extra={"event": "file_sent", "path": request.path, "bytes_out": bytes_out},
    )
    return Status.OK
