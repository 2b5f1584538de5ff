"""Minimal multipart/form-data decoding.

The HTTP runtime hands us the whole request body as one buffer, so there is
no need for a streaming parser. ``decode`` splits the buffer on the
boundary delimiter and keeps only the sections that carry a
``filename="..."`` parameter. Content bytes are sliced from the original
buffer and never re-encoded, so binary image data stays byte-exact.
"""

from __future__ import annotations

import re
from typing import List, Optional

from .models import FilePart

MULTIPART_MARKER = "multipart/form-data"

_BOUNDARY_RE = re.compile(r"boundary=(.+)$", re.IGNORECASE)
_FILENAME_RE = re.compile(r'filename="([^"]+)"')
_HEADER_END = b"\r\n\r\n"
# Every part body is followed by the CRLF that precedes the next delimiter.
_TRAILER_LEN = 2


def extract_boundary(content_type: Optional[str]) -> Optional[str]:
    """Return the boundary token of a Content-Type header, or None.

    Surrounding double quotes are removed and anything after a following
    ``;`` parameter separator is ignored.
    """
    if not content_type:
        return None
    match = _BOUNDARY_RE.search(content_type.strip())
    if not match:
        return None
    boundary = match.group(1).split(";", 1)[0].strip().strip('"')
    return boundary or None


def _split_sections(body: bytes, delimiter: bytes) -> List[bytes]:
    sections: List[bytes] = []
    start = None
    while True:
        pos = body.find(delimiter, start or 0)
        if pos == -1:
            break
        # bytes before the first delimiter are preamble
        if start is not None:
            sections.append(body[start:pos])
        start = pos + len(delimiter)
    return sections


def decode(body: bytes, boundary: str) -> List[FilePart]:
    """Split a multipart body into its file parts.

    Args:
        body: The raw (already base64-decoded) request body.
        boundary: Boundary token from the Content-Type header.

    Returns:
        The file parts in body order. Sections without a header/body
        separator and sections without a ``filename`` (plain form fields)
        are skipped. An empty list is returned when no delimiter is found.
    """
    delimiter = f"--{boundary}".encode("latin-1")
    parts: List[FilePart] = []
    for section in _split_sections(body, delimiter):
        header_end = section.find(_HEADER_END)
        if header_end == -1:
            continue
        # latin-1 maps every byte to one code point; used for matching only
        headers = section[:header_end].decode("latin-1")
        match = _FILENAME_RE.search(headers)
        if not match:
            continue
        # browsers send non-ASCII filenames as raw UTF-8
        filename = match.group(1).encode("latin-1").decode("utf-8", "replace")
        data = section[header_end + len(_HEADER_END):len(section) - _TRAILER_LEN]
        parts.append(FilePart(filename=filename, data=data))
    return parts
