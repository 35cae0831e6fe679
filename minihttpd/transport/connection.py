"""Accepted client connections."""

import logging
import socket
from typing import BinaryIO, Optional

from minihttpd.domain.correlation_id import CorrelationLoggerAdapter

CONNECTION_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("minihttpd.transport.connection"), {}
)


class Connection:
    """A client socket, its buffered byte stream and the peer's address.

    The stream is used for both reading request lines and writing the
    response. ``close`` is idempotent; use the connection as a context
    manager so it is released on every exit path.
    """

    def __init__(
        self,
        client_socket: socket.socket,
        host: str,
        port: str,
        stream: Optional[BinaryIO] = None,
    ) -> None:
        self.socket = client_socket
        self.host = host
        self.port = port
        self.stream = stream if stream is not None else client_socket.makefile("rwb")
        self.closed = False

    @property
    def peer(self) -> str:
        return f"{self.host}:{self.port}"

    def readline(self, limit: int) -> bytes:
        return self.stream.readline(limit)

    def write(self, data: bytes) -> None:
        self.stream.write(data)

    def flush(self) -> None:
        self.stream.flush()

    def release(self) -> None:
        """Drop this process's handles without shutting the socket down.

        Used by a forking parent: the child owns the live connection.
        """
        if self.closed:
            return
        self.closed = True
        self.stream.close()
        self.socket.close()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self.stream.flush()
        except OSError:
            pass
        try:
            self.stream.close()
        except OSError:
            pass
        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass
        self.socket.close()
        if CONNECTION_LOGGER.logger.isEnabledFor(logging.DEBUG):
            CONNECTION_LOGGER.debug(
                "Socket closed", extra={"event": "socket_closed", "client": self.peer}
            )

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def accept_connection(server_socket: socket.socket) -> Optional[Connection]:
    """Accept one client and look up its numeric host and port.

    Returns ``None`` when the peer address cannot be resolved; the accepted
    socket is closed in that case. Errors from ``accept`` itself propagate.
    """
    client_socket, client_address = server_socket.accept()
    try:
        host, port = socket.getnameinfo(
            client_address, socket.NI_NUMERICHOST | socket.NI_NUMERICSERV
        )
        connection = Connection(client_socket, host, port)
    except OSError as error:
        CONNECTION_LOGGER.error(
            "Unable to resolve peer address",
            extra={"event": "peer_lookup_failed", "error_type": type(error).__name__},
        )
        client_socket.close()
        return None

    CONNECTION_LOGGER.info(
        "Client connection accepted",
        extra={"event": "client_accepted", "client": connection.peer},
    )
    return connection
