"""HTTP/1.0 server for static files, directory listings and CGI scripts."""

import logging
import signal
import sys

from minihttpd.bootstrap.config import ConfigError, build_config, parse_cli_args
from minihttpd.bootstrap.logging_setup import configure_logging
from minihttpd.bootstrap.socket_factory import create_server_socket
from minihttpd.domain.correlation_id import CorrelationLoggerAdapter
from minihttpd.lifecycle.state import ServerLifecycle
from minihttpd.transport.accept_loop import run_server
from minihttpd.transport.context import WorkerContext

SERVER_LOGGER = CorrelationLoggerAdapter(logging.getLogger("minihttpd.server"), {})


def main(argv=None) -> int:
    """Start the server with the configured concurrency mode."""
    args = parse_cli_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.log_level, args.log_destination, args.log_json)

    try:
        config = build_config(args)
    except ConfigError as error:
        SERVER_LOGGER.critical(str(error), extra={"event": "config_invalid"})
        return 1

    lifecycle = ServerLifecycle()

    def shutdown_handler(signum: int, _frame) -> None:
        SERVER_LOGGER.info(
            "Received shutdown signal", extra={"event": "signal", "signal": signum}
        )
        lifecycle.request_stop()

    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)

    try:
        server_socket = create_server_socket(config)
    except OSError as error:
        SERVER_LOGGER.critical(
            "Unable to listen",
            extra={
                "event": "listen_failed",
                "port": config.port,
                "error_type": type(error).__name__,
            },
        )
        return 1

    SERVER_LOGGER.info(
        "Starting HTTP server",
        extra={
            "event": "server_starting",
            "host": config.host,
            "port": config.port,
            "root": config.root_path,
            "mime_types": config.mime_types_path,
            "mode": config.mode.value,
        },
    )
    run_server(server_socket, WorkerContext.from_config(config, lifecycle))
    return 0


if __name__ == "__main__":
    sys.exit(main())
