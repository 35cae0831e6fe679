"""Integration tests for concurrency modes and shutdown."""

from __future__ import annotations

import signal
import socket
import subprocess
from typing import TYPE_CHECKING

import pytest
import requests

from tests.utils.http import send_raw_request

pytestmark = pytest.mark.integration

if TYPE_CHECKING:
    from tests.conftest import ServerProcessInfo


def test_forking_mode_serves_while_a_client_stalls(
    forking_server_process: ServerProcessInfo,
) -> None:
    """An idle connection does not hold up other clients."""

    host = forking_server_process["host"]
    port = forking_server_process["port"]
    with socket.create_connection((host, port), timeout=5):
        response = requests.get(
            f"{forking_server_process['base_url']}/index.html", timeout=5
        )
        assert response.status_code == 200


def test_forking_mode_handles_many_sequential_clients(
    forking_server_process: ServerProcessInfo,
) -> None:
    """Each connection gets its own child and its own complete response."""

    for _ in range(20):
        response = send_raw_request(
            forking_server_process["host"],
            forking_server_process["port"],
            b"GET /docs/notes.txt HTTP/1.0\r\n\r\n",
        )
        assert response.status_code == 200
        assert response.body == b"release notes\n"


def test_sigterm_stops_server(server_process: ServerProcessInfo) -> None:
    """SIGTERM ends the accept loop and the process exits cleanly."""

    process = server_process["process"]
    assert requests.get(server_process["base_url"], timeout=5).status_code == 200

    process.send_signal(signal.SIGTERM)
    try:
        exit_code = process.wait(timeout=10)
    except subprocess.TimeoutExpired:
        process.kill()
        raise

    assert exit_code == 0
    log_text = server_process["log_file"].read_text()
    assert '"event": "shutdown_requested"' in log_text
    assert '"event": "server_stopped"' in log_text
