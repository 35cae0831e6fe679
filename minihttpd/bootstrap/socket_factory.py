"""Listening socket creation."""

import socket

from minihttpd.bootstrap.config import ServerConfig

LISTEN_BACKLOG = socket.SOMAXCONN


def create_server_socket(config: ServerConfig) -> socket.socket:
    """Bind the listening socket; ``accept`` wakes every ``accept_timeout`` seconds."""
    server_socket = socket.create_server(
        (config.host, config.port), backlog=LISTEN_BACKLOG, reuse_port=True
    )
    server_socket.settimeout(config.accept_timeout)
    return server_socket
