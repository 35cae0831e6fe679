"""Filesystem sandbox utilities for safe path resolution."""

import logging
import urllib.parse
from pathlib import Path
from typing import Optional, Union

from minihttpd.domain.correlation_id import CorrelationLoggerAdapter

SANDBOX_LOGGER = CorrelationLoggerAdapter(logging.getLogger("minihttpd.sandbox"), {})


def is_within_root(root: Path, target: Path) -> bool:
    """Return True when ``target`` is ``root`` itself or lies below it.

    Both paths must already be canonical. The comparison is per path
    component, so ``/srv/www-evil`` is not inside ``/srv/www``.
    """
    return target == root or root in target.parents


def resolve_request_path(root: Union[str, Path], uri: str) -> Optional[str]:
    """Map a request URI onto a canonical path inside the document root.

    The URI is percent-decoded and joined below ``root``; the result is then
    canonicalized (``.``, ``..`` and symlinks resolved). Returns ``None`` when
    the target does not exist or escapes the root.
    """
    relative_part = urllib.parse.unquote(uri, errors="surrogateescape")
    if "\x00" in relative_part:
        SANDBOX_LOGGER.warning(
            "Rejected path containing NUL byte",
            extra={"event": "forbidden_path", "uri": uri},
        )
        return None

    try:
        root_path = Path(root).resolve(strict=True)
        target = (root_path / relative_part.lstrip("/")).resolve(strict=True)
    except (OSError, RuntimeError) as error:
        if SANDBOX_LOGGER.logger.isEnabledFor(logging.DEBUG):
            SANDBOX_LOGGER.debug(
                "Unable to canonicalize request path",
                extra={
                    "event": "path_unresolved",
                    "uri": uri,
                    "error_type": type(error).__name__,
                },
            )
        return None

    if not is_within_root(root_path, target):
        SANDBOX_LOGGER.warning(
            "Request path escapes document root",
            extra={"event": "forbidden_path", "uri": uri, "path": target.as_posix()},
        )
        return None

    return str(target)
