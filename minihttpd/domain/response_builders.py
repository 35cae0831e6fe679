"""Pure HTTP response builders."""

import html
from typing import Iterable, Optional

from minihttpd.domain.http_types import HttpResponse, Status

HTML_CONTENT_TYPE = "text/html"


def encode_text(text: str) -> bytes:
    """Encode text for the wire, passing undecodable filename bytes through."""
    return text.encode("utf-8", "surrogateescape")


def streaming_response(
    status: Status, content_type: str, body_iter: Iterable[bytes]
) -> HttpResponse:
    """Return a response whose body is produced chunk by chunk."""
    return HttpResponse(status, {"Content-Type": content_type}, body_iter=body_iter)


def head_only_response(
    status: Status, content_type: str = HTML_CONTENT_TYPE
) -> HttpResponse:
    """Return a response carrying a status line and content type but no body."""
    return HttpResponse(status, {"Content-Type": content_type})


def status_page_response(status: Status) -> HttpResponse:
    """Produce a minimal HTML page naming the status."""
    body = (
        "<!DOCTYPE html>\n"
        "<html>\n"
        f"  <body><h1>{html.escape(str(status))}</h1></body>\n"
        "</html>\n"
    )
    return HttpResponse(status, {"Content-Type": HTML_CONTENT_TYPE}, encode_text(body))


def listing_prologue(uri: str) -> bytes:
    """Opening markup of a directory index page."""
    return encode_text(f"<h1>Index of {html.escape(uri)}</h1>\r\n<ul>\r\n")


def listing_entry(webpath: str, name: str, thumbnail: Optional[str] = None) -> bytes:
    """One ``<li>`` item linking to ``webpath``, optionally with a thumbnail."""
    href = html.escape(webpath, quote=True)
    parts = ["\t<li>\r\n"]
    if thumbnail is not None:
        parts.append(
            f'\t\t<img src="{html.escape(thumbnail, quote=True)}" width="50">\r\n'
        )
    parts.append(f'\t\t<a href="{href}">{html.escape(name)}</a>\r\n')
    parts.append("\t</li>\r\n")
    return encode_text("".join(parts))


def listing_epilogue() -> bytes:
    """Closing markup of a directory index page."""
    return b"</ul>\r\n"
