"""Shared fixtures and payload builders for the test suite."""

import base64
import io
import sys
from pathlib import Path

import pytest
from PIL import Image

# Make the project root importable when running pytest without installing.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from imagepack.events import RecordingEventSink  # noqa: E402

BOUNDARY = "----imagepackBoundary7MA4YWxkTrZu0gW"


def make_image(fmt="PNG", size=(100, 100), mode="RGB", color=(200, 40, 40)):
    """Return encoded bytes of a solid-colour image."""
    if mode == "RGBA" and len(color) == 3:
        color = color + (128,)
    img = Image.new(mode, size, color=color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def build_multipart(files=(), fields=(), boundary=BOUNDARY):
    """Encode ``files`` [(name, bytes)] and ``fields`` [(name, value)] as multipart."""
    out = b""
    for name, value in fields:
        out += f"--{boundary}\r\n".encode()
        out += f'Content-Disposition: form-data; name="{name}"\r\n\r\n'.encode()
        out += value.encode() + b"\r\n"
    for filename, data in files:
        out += f"--{boundary}\r\n".encode()
        out += f'Content-Disposition: form-data; name="files"; filename="{filename}"\r\n'.encode()
        out += b"Content-Type: application/octet-stream\r\n\r\n"
        out += data + b"\r\n"
    out += f"--{boundary}--\r\n".encode()
    return out


def multipart_event(files=(), fields=(), method="POST", boundary=BOUNDARY, headers=None):
    """Serverless-style event carrying a base64 multipart body."""
    body = build_multipart(files, fields, boundary)
    return {
        "httpMethod": method,
        "headers": headers if headers is not None else {
            "content-type": f"multipart/form-data; boundary={boundary}",
        },
        "body": base64.b64encode(body).decode("ascii"),
        "isBase64Encoded": True,
    }


@pytest.fixture
def work_root(tmp_path):
    """An isolated root for working areas; must be empty after each request."""
    root = tmp_path / "work"
    root.mkdir()
    return root


@pytest.fixture
def events():
    return RecordingEventSink()
