"""Unit tests for static file streaming."""

import io
import os
from pathlib import Path

import pytest

from minihttpd.domain.http_types import HeaderList, HttpRequest, Status
from minihttpd.handlers.file_handler import handle_file_request, stream_file
from minihttpd.transport.context import WorkerContext
from tests.utils.fakes import make_connection


def _request_for(path: Path, connection) -> HttpRequest:
    return HttpRequest(
        "GET", "/" + path.name, "", HeaderList(), path=str(path), connection=connection
    )


def test_stream_file_yields_fixed_size_chunks() -> None:
    """Chunks are at most ``chunk_size`` bytes and cover the whole file."""
    chunks = list(stream_file(io.BytesIO(b"abcdefghij"), chunk_size=4))
    assert chunks == [b"abcd", b"efgh", b"ij"]


def test_file_is_served_with_table_content_type(
    docroot: Path, worker_context: WorkerContext
) -> None:
    """The body equals the file bytes and the type comes from the table."""
    target = docroot / "index.html"
    target.write_bytes(b"<h1>hello</h1>\n")
    connection, stream = make_connection()

    status = handle_file_request(_request_for(target, connection), worker_context)

    assert status is Status.OK
    response = stream.response()
    assert response.status_line == "HTTP/1.0 200 OK"
    assert response.headers["content-type"] == "text/html"
    assert response.body == b"<h1>hello</h1>\n"


def test_large_file_arrives_intact(
    docroot: Path, worker_context: WorkerContext
) -> None:
    """Files spanning several chunks are streamed completely."""
    payload = os.urandom(3 * 65536 + 7)
    target = docroot / "blob.bin"
    target.write_bytes(payload)
    connection, stream = make_connection()

    status = handle_file_request(_request_for(target, connection), worker_context)

    assert status is Status.OK
    response = stream.response()
    assert response.headers["content-type"] == "text/plain"
    assert response.body == payload


def test_open_failure_returns_internal_error_page(
    docroot: Path, worker_context: WorkerContext
) -> None:
    """Only the error page is written when the file cannot be opened."""
    connection, stream = make_connection()

    status = handle_file_request(
        _request_for(docroot / "vanished.txt", connection), worker_context
    )

    assert status is Status.INTERNAL_SERVER_ERROR
    assert stream.response().status_line == "HTTP/1.0 500 Internal Server Error"


def test_write_failure_mid_stream_reports_internal_error(
    docroot: Path, worker_context: WorkerContext, caplog: pytest.LogCaptureFixture
) -> None:
    """A client that stops reading truncates the response without an error body."""
    target = docroot / "big.txt"
    target.write_bytes(b"x" * 200_000)
    connection, stream = make_connection(fail_after=100_000)

    status = handle_file_request(_request_for(target, connection), worker_context)

    assert status is Status.INTERNAL_SERVER_ERROR
    assert stream.written.startswith(b"HTTP/1.0 200 OK\r\n")
    assert b"500 Internal Server Error" not in stream.written
    assert any(
        getattr(record, "event", None) == "file_stream_failed"
        for record in caplog.records
    )
