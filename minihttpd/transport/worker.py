"""Per-connection request processing."""

import logging

from minihttpd.domain.correlation_id import (
    CorrelationLoggerAdapter,
    clear_correlation_id,
    generate_correlation_id,
    set_correlation_id,
)
from minihttpd.domain.http_types import Status
from minihttpd.pipeline.router import handle_request
from minihttpd.transport.connection import Connection
from minihttpd.transport.context import WorkerContext

WORKER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("minihttpd.transport.worker"), {}
)


def handle_client(connection: Connection, context: WorkerContext) -> Status:
    """Serve exactly one request on ``connection`` and close it.

    Never raises: failures are logged and reported as ``Status.UNKNOWN``.
    """
    set_correlation_id(generate_correlation_id())
    status = Status.UNKNOWN
    try:
        with connection:
            status = handle_request(connection, context)
    except (ConnectionError, TimeoutError, OSError, UnicodeError) as error:
        WORKER_LOGGER.error(
            "Error handling client connection",
            extra={
                "event": "connection_error",
                "client": connection.peer,
                "error_type": type(error).__name__,
            },
        )
    except Exception as error:  # pylint: disable=broad-except
        WORKER_LOGGER.error(
            "Unexpected error in worker",
            extra={
                "event": "worker_error",
                "client": connection.peer,
                "error_type": type(error).__name__,
            },
            exc_info=True,
        )
    finally:
        WORKER_LOGGER.info(
            "Request complete",
            extra={
                "event": "request_complete",
                "client": connection.peer,
                "status_code": int(status),
            },
        )
        clear_correlation_id()
    return status
