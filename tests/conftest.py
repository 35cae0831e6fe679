"""Shared pytest fixtures for integration tests."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Generator, TypedDict

import pytest

from tests.utils.http import reserve_port, wait_for_port

if TYPE_CHECKING:
    from _pytest.tmpdir import TempPathFactory

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SERVER_ENTRYPOINT = PROJECT_ROOT / "main.py"

INDEX_HTML = b"<!DOCTYPE html>\n<html><body><h1>integration</h1></body></html>\n"
MIME_TABLE = "# test table\ntext/html html htm\ntext/plain txt\nimage/png png\n"
REPORT_CGI = """\
#!/bin/sh
printf 'HTTP/1.0 200 OK\\r\\nContent-Type: text/plain\\r\\n\\r\\n'
echo "QUERY_STRING=$QUERY_STRING"
echo "REQUEST_METHOD=$REQUEST_METHOD"
echo "HTTP_USER_AGENT=$HTTP_USER_AGENT"
"""


class ServerProcessInfo(TypedDict):
    """Metadata describing a running server fixture instance."""

    base_url: str
    host: str
    port: int
    root: Path
    mode: str
    process: subprocess.Popen[str]
    log_file: Path


def _build_docroot(base: Path) -> Path:
    root = base / "www"
    (root / "docs").mkdir(parents=True)
    (root / "scripts").mkdir()
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "docs" / "notes.txt").write_text("release notes\n")
    (root / "docs" / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n")
    script = root / "scripts" / "report.cgi"
    script.write_text(REPORT_CGI)
    script.chmod(0o755)
    (base / "secret.txt").write_text("outside the root\n")
    return root


def _launch_server(
    host: str, port: int, base: Path, mode: str
) -> Generator[ServerProcessInfo, None, None]:
    root = _build_docroot(base)
    mime_table = base / "mime.types"
    mime_table.write_text(MIME_TABLE)
    log_file = base / "server.log"
    args = [
        sys.executable,
        str(SERVER_ENTRYPOINT),
        "-c",
        mode,
        "-m",
        str(mime_table),
        "-p",
        str(port),
        "-r",
        str(root),
        "--host",
        host,
        "--log-destination",
        str(log_file),
    ]

    with subprocess.Popen(
        args,
        cwd=PROJECT_ROOT,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    ) as process:
        try:
            wait_for_port(host, port)
        except Exception:
            process.terminate()
            stdout, stderr = process.communicate(timeout=5)
            print(f"\nServer stdout:\n{stdout}")
            print(f"\nServer stderr:\n{stderr}")
            raise

        yield {
            "base_url": f"http://{host}:{port}",
            "host": host,
            "port": port,
            "root": root,
            "mode": mode,
            "process": process,
            "log_file": log_file,
        }

        process.terminate()
        try:
            process.wait(timeout=10)
        except subprocess.TimeoutExpired:
            process.kill()


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Expose the repository root path to tests."""

    return PROJECT_ROOT


@pytest.fixture(name="server_process", params=["single", "forking"])
def _server_process(
    request: pytest.FixtureRequest, tmp_path_factory: "TempPathFactory"
) -> Generator[ServerProcessInfo, None, None]:
    """Launch the server in a background process, once per concurrency mode."""

    host = "127.0.0.1"
    port = reserve_port(host)
    base = tmp_path_factory.mktemp(f"server-{request.param}")
    yield from _launch_server(host, port, base, request.param)


@pytest.fixture(name="forking_server_process")
def _forking_server_process(
    tmp_path_factory: "TempPathFactory",
) -> Generator[ServerProcessInfo, None, None]:
    """Launch a server in process-per-connection mode only."""

    host = "127.0.0.1"
    port = reserve_port(host)
    base = tmp_path_factory.mktemp("server-forking-only")
    yield from _launch_server(host, port, base, "forking")


@pytest.fixture()
def base_url(server_process: ServerProcessInfo) -> str:
    """Expose the running server base URL to integration tests."""

    return server_process["base_url"]
