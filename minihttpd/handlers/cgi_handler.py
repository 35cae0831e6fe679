"""CGI script execution handler."""

import logging
import os
import subprocess
from typing import IO, Iterator

from minihttpd.bootstrap.config import ServerConfig
from minihttpd.domain.correlation_id import CorrelationLoggerAdapter
from minihttpd.domain.http_types import HTTP_VERSION, HttpRequest, Status
from minihttpd.handlers.error_handler import handle_error
from minihttpd.pipeline.io import write_body
from minihttpd.transport.context import WorkerContext

CGI_LOGGER = CorrelationLoggerAdapter(logging.getLogger("minihttpd.handlers.cgi"), {})

SERVER_SOFTWARE = "minihttpd"
CHUNK_SIZE = 8192

FORWARDED_HEADERS = {
    "Host": "HTTP_HOST",
    "User-Agent": "HTTP_USER_AGENT",
    "Accept": "HTTP_ACCEPT",
    "Accept-Language": "HTTP_ACCEPT_LANGUAGE",
    "Accept-Encoding": "HTTP_ACCEPT_ENCODING",
    "Connection": "HTTP_CONNECTION",
}


def build_cgi_environment(
    request: HttpRequest, config: ServerConfig
) -> dict[str, str]:
    """Return the variables a CGI script receives on top of the server environment."""
    connection = request.connection
    environment = {
        "DOCUMENT_ROOT": config.root_path,
        "QUERY_STRING": request.query,
        "REMOTE_ADDR": connection.host if connection is not None else "",
        "REMOTE_PORT": connection.port if connection is not None else "",
        "REQUEST_METHOD": request.method,
        "REQUEST_URI": request.uri,
        "SCRIPT_FILENAME": request.path or "",
        "SERVER_PORT": str(config.port),
        "GATEWAY_INTERFACE": "CGI/1.1",
        "SERVER_PROTOCOL": HTTP_VERSION,
        "SERVER_SOFTWARE": SERVER_SOFTWARE,
    }
    for header_name, variable in FORWARDED_HEADERS.items():
        value = request.headers.get(header_name)
        if value is not None:
            environment[variable] = value
    return environment


def _read_output(stdout: IO[bytes]) -> Iterator[bytes]:
    while True:
        chunk = stdout.read1(CHUNK_SIZE)
        if not chunk:
            break
        yield chunk


def handle_cgi_request(request: HttpRequest, context: WorkerContext) -> Status:
    """Run the script and copy its standard output to the client verbatim.

    The script writes the whole response, status line included. Output is
    copied until the script closes stdout. A nonzero exit status is logged
    but the request still counts as OK.
    """
    connection = request.connection
    environment = dict(os.environ)
    environment.update(build_cgi_environment(request, context.config))

    try:
        process = subprocess.Popen(
            [request.path],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            env=environment,
            cwd=os.path.dirname(request.path),
        )
    except OSError as error:
        CGI_LOGGER.error(
            "Unable to start CGI script",
            extra={
                "event": "cgi_start_failed",
                "path": request.path,
                "error_type": type(error).__name__,
                "errno": error.errno,
            },
        )
        return handle_error(connection, Status.INTERNAL_SERVER_ERROR, context.config)

    CGI_LOGGER.info(
        "CGI script started",
        extra={"event": "cgi_started", "path": request.path, "pid": process.pid},
    )
    with process:
        try:
            bytes_out = write_body(connection, _read_output(process.stdout))
        except OSError as error:
            process.kill()
            CGI_LOGGER.error(
                "CGI output copy aborted",
                extra={
                    "event": "cgi_copy_failed",
                    "path": request.path,
                    "error_type": type(error).__name__,
                },
            )
            return Status.INTERNAL_SERVER_ERROR

    exit_status = process.returncode
    if exit_status != 0:
        CGI_LOGGER.warning(
            "CGI script exited with nonzero status",
            extra={
                "event": "cgi_exit_status",
                "path": request.path,
                "exit_status": exit_status,
            },
        )
    else:
        CGI_LOGGER.info(
            "CGI script finished",
            extra={
                "event": "cgi_finished",
                "path": request.path,
                "bytes_out": bytes_out,
            },
        )
    return Status.OK
