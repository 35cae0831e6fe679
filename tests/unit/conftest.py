"""Shared fixtures for unit tests."""

import logging
from pathlib import Path

import pytest

from minihttpd.bootstrap.config import ServerConfig
from minihttpd.transport.context import WorkerContext

MIME_TABLE = """\
# content-type   extensions
text/html        html htm
text/plain       txt text
image/png        png
image/jpeg       jpeg jpg
application/x-shadow html
"""

NOT_FOUND_PAGE = "<html><body>custom not found</body></html>\n"


@pytest.fixture(autouse=True)
def enable_log_propagation(caplog: pytest.LogCaptureFixture):
    """Ensure debug logs propagate to root so caplog can catch them."""
    caplog.set_level(logging.DEBUG, logger="minihttpd")
    logger = logging.getLogger("minihttpd")
    old_propagate = logger.propagate
    logger.propagate = True
    yield
    logger.propagate = old_propagate


@pytest.fixture(name="docroot")
def docroot_fixture(tmp_path: Path) -> Path:
    """An empty document root with a canonical path."""
    root = tmp_path / "www"
    root.mkdir()
    return root.resolve()


@pytest.fixture(name="mime_table")
def mime_table_fixture(tmp_path: Path) -> Path:
    """A small mime.types table."""
    table = tmp_path / "mime.types"
    table.write_text(MIME_TABLE)
    return table


@pytest.fixture(name="not_found_page")
def not_found_page_fixture(tmp_path: Path) -> Path:
    """A fallback page for 404 responses."""
    page = tmp_path / "404.html"
    page.write_text(NOT_FOUND_PAGE)
    return page


@pytest.fixture(name="server_config")
def server_config_fixture(
    docroot: Path, mime_table: Path, not_found_page: Path
) -> ServerConfig:
    """Configuration pointing at the temporary docroot and table."""
    return ServerConfig(
        port=9898,
        root_path=str(docroot),
        mime_types_path=str(mime_table),
        default_mime_type="text/plain",
        not_found_page=str(not_found_page),
    )


@pytest.fixture(name="worker_context")
def worker_context_fixture(server_config: ServerConfig) -> WorkerContext:
    """Worker context built from the temporary configuration."""
    return WorkerContext.from_config(server_config)
