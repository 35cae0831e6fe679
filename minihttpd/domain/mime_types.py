"""Content-type lookup backed by a mime.types style table."""

import logging
import os

from minihttpd.domain.correlation_id import CorrelationLoggerAdapter

MIME_LOGGER = CorrelationLoggerAdapter(logging.getLogger("minihttpd.mime_types"), {})


def file_extension(path: str) -> str:
    """Return the extension of ``path`` without the dot, or ``""``.

    Only the final path component is considered, and a leading dot
    (``.bashrc``) does not start an extension.
    """
    _, extension = os.path.splitext(os.path.basename(path))
    return extension[1:]


class MimeTypeResolver:
    """Maps file extensions to content types.

    Each table line holds a content type followed by whitespace separated
    extensions::

        text/html    html htm

    The table is scanned on every lookup and the first matching line wins.
    Extension matching is case-sensitive. Anything unresolvable falls back
    to ``default``.
    """

    def __init__(self, table_path: str, default: str) -> None:
        self.table_path = table_path
        self.default = default

    def resolve(self, path: str) -> str:
        extension = file_extension(path)
        if not extension:
            return self.default

        try:
            with open(self.table_path, encoding="utf-8", errors="replace") as table:
                for line in table:
                    tokens = line.split()
                    if not tokens or tokens[0].startswith("#"):
                        continue
                    if extension in tokens[1:]:
                        return tokens[0]
        except OSError as error:
            MIME_LOGGER.warning(
                "Unable to read mime types table",
                extra={
                    "event": "mime_table_unreadable",
                    "path": self.table_path,
                    "error_type": type(error).__name__,
                },
            )
            return self.default

        if MIME_LOGGER.logger.isEnabledFor(logging.DEBUG):
            MIME_LOGGER.debug(
                "No content type for extension",
                extra={"event": "mime_type_default", "extension": extension},
            )
        return self.default

    def is_image(self, path: str) -> bool:
        return self.resolve(path).startswith("image/")
