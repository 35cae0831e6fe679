"""HTTP Input/Output operations."""

import logging
from typing import Iterable

from minihttpd.domain.correlation_id import CorrelationLoggerAdapter
from minihttpd.domain.http_types import (
    HTTP_VERSION,
    HeaderList,
    HttpRequest,
    HttpResponse,
    Status,
)
from minihttpd.transport.connection import Connection

IO_LOGGER = CorrelationLoggerAdapter(logging.getLogger("minihttpd.io"), {})

MAX_LINE_BYTES = 8192


class MalformedRequest(ValueError):
    """Raised when the request line or a header line cannot be parsed."""


def _decode_line(raw: bytes) -> str:
    return raw.decode("utf-8", "surrogateescape")


def parse_request_line(line: str) -> tuple[str, str, str]:
    """Split ``METHOD URI[?QUERY] HTTP/VERSION`` into method, URI and query.

    The query runs from the first ``?`` up to an optional ``#`` fragment.
    The URI is returned exactly as received, without percent-decoding.
    """
    tokens = line.split()
    if len(tokens) < 2:
        raise MalformedRequest("Invalid request line")

    method, target = tokens[0], tokens[1]
    uri, _, remainder = target.partition("?")
    query = remainder.partition("#")[0]
    return method, uri, query


def parse_header_line(line: str) -> tuple[str, str]:
    """Split ``Name: value`` at the first colon, trimming leading value space."""
    name, colon, value = line.partition(":")
    if not colon:
        raise MalformedRequest("Header line without colon")
    return name, value.lstrip()


def _is_header_terminator(raw: bytes) -> bool:
    return not raw or not raw.rstrip(b"\r\n")


def parse_request(connection: Connection) -> HttpRequest:
    """Read the request line and headers from the connection.

    No request body is read. Raises ``MalformedRequest`` when the request
    line is missing or incomplete or a header lacks a colon.
    """
    raw_line = connection.readline(MAX_LINE_BYTES)
    if not raw_line:
        raise MalformedRequest("Connection closed before request line")
    method, uri, query = parse_request_line(_decode_line(raw_line))

    headers = HeaderList()
    while True:
        raw_header = connection.readline(MAX_LINE_BYTES)
        if _is_header_terminator(raw_header):
            break
        name, value = parse_header_line(_decode_line(raw_header).rstrip("\r\n"))
        headers.add(name, value)

    if IO_LOGGER.logger.isEnabledFor(logging.DEBUG):
        for name, value in headers:
            IO_LOGGER.debug(
                "Parsed header",
                extra={"event": "header_parsed", "header": name, "value": value},
            )
    return HttpRequest(method, uri, query, headers, connection=connection)


def write_head(connection: Connection, status: Status, headers: dict[str, str]) -> None:
    """Write the status line, header lines and blank separator."""
    header_lines = [f"{HTTP_VERSION} {status}"]
    header_lines.extend(f"{name}: {value}" for name, value in headers.items())
    connection.write(("\r\n".join(header_lines) + "\r\n\r\n").encode("latin-1"))


def write_body(connection: Connection, chunks: Iterable[bytes]) -> int:
    """Write each chunk as it is produced; returns the number of bytes sent."""
    bytes_out = 0
    for chunk in chunks:
        if not chunk:
            continue
        connection.write(chunk)
        bytes_out += len(chunk)
    connection.flush()
    return bytes_out


def send_response(connection: Connection, response: HttpResponse) -> int:
    """Serialize the response onto the connection; returns body bytes sent."""
    write_head(connection, response.status, response.headers)
    if response.body_iter is not None:
        bytes_out = write_body(connection, response.body_iter)
    else:
        bytes_out = write_body(connection, [response.body])
    if IO_LOGGER.logger.isEnabledFor(logging.DEBUG):
        IO_LOGGER.debug(
            "Sent response",
            extra={
                "event": "response_sent",
                "status_code": int(response.status),
                "bytes_out": bytes_out,
            },
        )
    return bytes_out
