"""Server configuration and CLI argument parsing."""

import argparse
import enum
import os
from dataclasses import dataclass
from pathlib import Path


class ConfigError(Exception):
    """Raised when startup configuration cannot be turned into a ServerConfig."""


class ServerMode(enum.Enum):
    """Concurrency policy used by the accept loop."""

    SINGLE = "single"
    FORKING = "forking"


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None else default


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value else default


DEFAULT_HOST = _env_str("MINIHTTPD_HOST", "0.0.0.0")
DEFAULT_PORT = _env_int("MINIHTTPD_PORT", 9898)
DEFAULT_ROOT = _env_str("MINIHTTPD_ROOT", "www")
DEFAULT_MIME_TYPES_PATH = _env_str("MINIHTTPD_MIME_TYPES", "/etc/mime.types")
DEFAULT_MIME_TYPE = _env_str("MINIHTTPD_DEFAULT_MIME_TYPE", "text/plain")
DEFAULT_MODE = _env_str("MINIHTTPD_CONCURRENCY", ServerMode.SINGLE.value)
DEFAULT_NOT_FOUND_PAGE = "www/html/404.html"
ACCEPT_TIMEOUT_SECONDS = 0.5


@dataclass(frozen=True)
class ServerConfig:
    """Process-wide settings, fixed once at startup."""

    port: int
    root_path: str
    mime_types_path: str = DEFAULT_MIME_TYPES_PATH
    default_mime_type: str = DEFAULT_MIME_TYPE
    mode: ServerMode = ServerMode.SINGLE
    host: str = DEFAULT_HOST
    not_found_page: str = DEFAULT_NOT_FOUND_PAGE
    accept_timeout: float = ACCEPT_TIMEOUT_SECONDS


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Return parsed CLI arguments for server configuration."""
    parser = argparse.ArgumentParser(
        description="HTTP/1.0 server for static files, directory listings and CGI"
    )
    parser.add_argument(
        "-c",
        "--concurrency",
        default=DEFAULT_MODE,
        choices=[mode.value for mode in ServerMode],
        type=str.lower,
        help="Single or forking mode",
    )
    parser.add_argument(
        "-m",
        "--mime-types",
        default=DEFAULT_MIME_TYPES_PATH,
        help="Path to mimetypes file",
    )
    parser.add_argument(
        "-M",
        "--default-mime-type",
        default=DEFAULT_MIME_TYPE,
        help="Default mimetype",
    )
    parser.add_argument(
        "-p", "--port", type=int, default=DEFAULT_PORT, help="Port to listen on"
    )
    parser.add_argument("-r", "--root", default=DEFAULT_ROOT, help="Root directory")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument(
        "--not-found-page",
        default=DEFAULT_NOT_FOUND_PAGE,
        help="HTML page served with 404 responses",
    )
    default_log_level = os.getenv("MINIHTTPD_LOG_LEVEL", "INFO").upper()
    default_destination = os.getenv("MINIHTTPD_LOG_DESTINATION", "stdout")
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
    )
    parser.add_argument(
        "--log-destination",
        default=default_destination,
        help="stdout or a file path",
    )
    parser.add_argument(
        "--log-json",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Emit structured JSON log lines",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ServerConfig:
    """Build the immutable ServerConfig, canonicalizing the document root."""
    try:
        root_path = Path(args.root).resolve(strict=True)
    except (OSError, RuntimeError) as error:
        raise ConfigError(f"Document root {args.root!r} is not accessible") from error
    if not root_path.is_dir():
        raise ConfigError(f"Document root {args.root!r} is not a directory")

    return ServerConfig(
        port=args.port,
        root_path=str(root_path),
        mime_types_path=args.mime_types,
        default_mime_type=args.default_mime_type,
        mode=ServerMode(args.concurrency),
        host=args.host,
        not_found_page=args.not_found_page,
    )
