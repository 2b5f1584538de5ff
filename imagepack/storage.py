"""Scratch storage for a single request.

Each request stages its uploads in an ``input`` directory and accumulates
generated variants in an ``output`` directory. Both live under a shared
root and carry a per-request identifier in their names, so concurrent
requests never touch each other's files. ``WorkingArea`` is a context
manager: the directories are created on entry and removed on exit, on the
success path and on every failure path alike.

Environment variables:
    WORK_ROOT: Root under which working areas are created (default: the
        system temporary directory).
"""

from __future__ import annotations

import os
import shutil
import tempfile
import time
import uuid
from typing import Optional

from .errors import WorkingAreaError
from .events import EventSink, LoggingEventSink

WORK_ROOT: str = os.getenv("WORK_ROOT", "") or tempfile.gettempdir()


def _ensure_dir(path: str) -> None:
    """Create a directory and its parents if they do not exist."""
    os.makedirs(path, exist_ok=True)


def save_bytes(root: str, relative_path: str, data: bytes) -> str:
    """Write ``data`` to ``root/relative_path``, creating parent directories.

    Returns:
        The absolute filesystem path written.

    Raises:
        ValueError: If ``relative_path`` is absolute or escapes ``root``.
    """
    dest_path = resolve_inside(root, relative_path)
    if dest_path is None:
        raise ValueError(f"Refusing to write outside {root}: {relative_path!r}")
    _ensure_dir(os.path.dirname(dest_path))
    with open(dest_path, "wb") as f:
        f.write(data)
    return dest_path


def resolve_inside(root: str, relative_path: str) -> Optional[str]:
    """Return the absolute path of ``relative_path`` under ``root``.

    None is returned for absolute paths, ``..`` segments and anything else
    that would land outside ``root`` or on ``root`` itself.
    """
    if not relative_path or os.path.isabs(relative_path):
        return None
    segments = relative_path.replace("\\", "/").split("/")
    if ".." in segments:
        return None
    base = os.path.abspath(root)
    dest = os.path.abspath(os.path.join(base, relative_path))
    if os.path.commonpath([base, dest]) != base or dest == base:
        return None
    return dest


def _request_id() -> str:
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


class WorkingArea:
    """The input/output directory pair owned by one request.

    Args:
        root: Directory under which the pair is created. Defaults to
            ``WORK_ROOT``.
        events: Sink that receives ``cleanup_failed`` events.
    """

    def __init__(self, root: Optional[str] = None, events: Optional[EventSink] = None) -> None:
        self.root = root or WORK_ROOT
        self.request_id = _request_id()
        self.input_dir = os.path.join(self.root, f"input-{self.request_id}")
        self.output_dir = os.path.join(self.root, f"output-{self.request_id}")
        self._events = events or LoggingEventSink()

    def create(self) -> "WorkingArea":
        try:
            _ensure_dir(self.input_dir)
            _ensure_dir(self.output_dir)
        except OSError as exc:
            raise WorkingAreaError(detail=f"{self.root}: {exc}") from exc
        return self

    def cleanup(self) -> None:
        """Remove both directories. Failures are reported, never raised."""
        for path in (self.input_dir, self.output_dir):
            try:
                shutil.rmtree(path)
            except (FileNotFoundError, NotADirectoryError):
                continue
            except OSError as exc:
                self._events.emit("cleanup_failed", path=path, error=str(exc))

    def __enter__(self) -> "WorkingArea":
        try:
            return self.create()
        except WorkingAreaError:
            # a half-created pair must not outlive the request
            self.cleanup()
            raise

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()
