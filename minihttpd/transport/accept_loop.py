"""Connection acceptance loops for the two concurrency modes."""

import logging
import os
import socket
from typing import Optional

from minihttpd.bootstrap.config import ServerMode
from minihttpd.domain.correlation_id import CorrelationLoggerAdapter
from minihttpd.transport.connection import Connection, accept_connection
from minihttpd.transport.context import WorkerContext
from minihttpd.transport.worker import handle_client

ACCEPT_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("minihttpd.transport.accept"), {}
)

SHUTDOWN_GRACE_SECONDS = 5.0


def _accept_next(
    server_socket: socket.socket, context: WorkerContext
) -> Optional[Connection]:
    """Accept one client; transient failures yield ``None`` instead of raising."""
    try:
        return accept_connection(server_socket)
    except socket.timeout:
        return None
    except OSError as error:
        if context.lifecycle.should_stop():
            return None
        ACCEPT_LOGGER.error(
            "Socket accept failed",
            extra={
                "event": "accept_error",
                "error_type": type(error).__name__,
                "errno": error.errno,
            },
        )
        return None


def single_server(server_socket: socket.socket, context: WorkerContext) -> None:
    """Handle one connection at a time until a stop is requested."""
    lifecycle = context.lifecycle
    while not lifecycle.should_stop():
        connection = _accept_next(server_socket, context)
        if connection is None:
            continue
        handle_client(connection, context)


def _run_child(
    server_socket: socket.socket, connection: Connection, context: WorkerContext
) -> None:
    """Body of a forked child; never returns."""
    try:
        server_socket.close()
        handle_client(connection, context)
    finally:
        logging.shutdown()
        os._exit(0)  # pylint: disable=protected-access


def forking_server(server_socket: socket.socket, context: WorkerContext) -> None:
    """Fork a child process per connection until a stop is requested.

    The parent closes its copy of each accepted connection straight away and
    reaps finished children between accepts. A failed fork drops that one
    connection and the loop carries on.
    """
    lifecycle = context.lifecycle
    try:
        while not lifecycle.should_stop():
            lifecycle.reap_children()
            connection = _accept_next(server_socket, context)
            if connection is None:
                continue

            try:
                pid = os.fork()
            except OSError as error:
                ACCEPT_LOGGER.error(
                    "Unable to fork connection handler",
                    extra={
                        "event": "fork_failed",
                        "client": connection.peer,
                        "error_type": type(error).__name__,
                    },
                )
                connection.close()
                continue

            if pid == 0:
                _run_child(server_socket, connection, context)

            lifecycle.register_child(pid)
            if ACCEPT_LOGGER.logger.isEnabledFor(logging.DEBUG):
                ACCEPT_LOGGER.debug(
                    "Forked connection handler",
                    extra={
                        "event": "child_forked",
                        "client": connection.peer,
                        "pid": pid,
                    },
                )
            connection.release()
    finally:
        lifecycle.wait_for_children(SHUTDOWN_GRACE_SECONDS)


SERVERS = {
    ServerMode.SINGLE: single_server,
    ServerMode.FORKING: forking_server,
}


def run_server(server_socket: socket.socket, context: WorkerContext) -> None:
    """Serve connections from ``server_socket`` with the configured mode.

    Returns only after the lifecycle asks for a stop; the listening socket is
    closed on the way out.
    """
    config = context.config
    ACCEPT_LOGGER.info(
        "Server listening for connections",
        extra={
            "event": "server_listening",
            "host": config.host,
            "port": config.port,
            "root": config.root_path,
            "mode": config.mode.value,
        },
    )
    try:
        SERVERS[config.mode](server_socket, context)
    finally:
        server_socket.close()
        ACCEPT_LOGGER.info(
            "Server shutdown complete", extra={"event": "server_stopped"}
        )
