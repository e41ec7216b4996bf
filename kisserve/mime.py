"""Content-Type detection from file extensions."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import PurePath


class MimeType(Enum):
    """Content types the server knows how to label."""

    HTML = "text/html; charset=utf-8"
    CSS = "text/css; charset=utf-8"
    JAVASCRIPT = "text/javascript; charset=utf-8"
    JSON = "application/json; charset=utf-8"
    XML = "application/xml; charset=utf-8"
    PLAIN_TEXT = "text/plain; charset=utf-8"
    ICON = "image/x-icon"
    PNG = "image/png"
    JPEG = "image/jpeg"
    GIF = "image/gif"
    SVG = "image/svg+xml"
    PDF = "application/pdf"
    WOFF = "font/woff"
    WOFF2 = "font/woff2"
    TTF = "font/ttf"
    EOT = "application/vnd.ms-fontobject"
    OCTET_STREAM = "application/octet-stream"

    def __str__(self) -> str:
        return self.value


_BY_EXTENSION = {
    "html": MimeType.HTML,
    "htm": MimeType.HTML,
    "css": MimeType.CSS,
    "js": MimeType.JAVASCRIPT,
    "json": MimeType.JSON,
    "xml": MimeType.XML,
    "txt": MimeType.PLAIN_TEXT,
    "ico": MimeType.ICON,
    "png": MimeType.PNG,
    "jpg": MimeType.JPEG,
    "jpeg": MimeType.JPEG,
    "gif": MimeType.GIF,
    "svg": MimeType.SVG,
    "pdf": MimeType.PDF,
    "woff": MimeType.WOFF,
    "woff2": MimeType.WOFF2,
    "ttf": MimeType.TTF,
    "eot": MimeType.EOT,
}


def get_mime_type(path: str | os.PathLike[str]) -> MimeType:
    """Return the content type for a path, judged by its extension alone."""
    suffix = PurePath(os.fspath(path)).suffix
    if not suffix:
        return MimeType.OCTET_STREAM
    return _BY_EXTENSION.get(suffix[1:].lower(), MimeType.OCTET_STREAM)