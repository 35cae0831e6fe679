"""Shared HTTP type definitions to avoid circular imports."""

from dataclasses import dataclass, field
from enum import IntEnum
from http import HTTPStatus
from typing import TYPE_CHECKING, Iterable, Iterator, Optional

if TYPE_CHECKING:
    from minihttpd.transport.connection import Connection

HTTP_VERSION = "HTTP/1.0"


class Status(IntEnum):
    """Outcome of handling one request."""

    OK = 200
    BAD_REQUEST = 400
    NOT_FOUND = 404
    INTERNAL_SERVER_ERROR = 500
    UNKNOWN = 418

    @property
    def phrase(self) -> str:
        return HTTPStatus(self.value).phrase

    def __str__(self) -> str:
        return f"{self.value} {self.phrase}"


class HeaderList:
    """Request headers in arrival order; lookups see the last value written."""

    def __init__(self, pairs: Optional[Iterable[tuple[str, str]]] = None) -> None:
        self._pairs: list[tuple[str, str]] = list(pairs or [])

    def add(self, name: str, value: str) -> None:
        self._pairs.append((name, value))

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive lookup returning the most recently parsed value."""
        wanted = name.lower()
        for header_name, value in reversed(self._pairs):
            if header_name.lower() == wanted:
                return value
        return default

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def __repr__(self) -> str:
        return f"HeaderList({self._pairs!r})"


@dataclass
class HttpRequest:
    """Represents a parsed HTTP request bound to its connection."""

    method: str
    uri: str
    query: str
    headers: HeaderList = field(default_factory=HeaderList)
    path: Optional[str] = None
    connection: Optional["Connection"] = None


@dataclass
class HttpResponse:
    """Represents an HTTP response to be written to a client."""

    status: Status
    headers: dict[str, str]
    body: bytes = b""
    body_iter: Optional[Iterable[bytes]] = None

    @property
    def status_line(self) -> str:
        return f"{HTTP_VERSION} {self.status}"
