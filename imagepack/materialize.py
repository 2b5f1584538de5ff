"""Write decoded upload parts into a request's input directory."""

from __future__ import annotations

from typing import Iterable, List, Optional

from .archive import extract_all, is_archive_name
from .events import EventSink, LoggingEventSink
from .models import FilePart
from .storage import resolve_inside, save_bytes


def materialize(
    parts: Iterable[FilePart],
    input_dir: str,
    events: Optional[EventSink] = None,
) -> List[str]:
    """Populate ``input_dir`` from uploaded parts.

    Zip parts are expanded in place of the raw archive bytes; every other
    part is written verbatim under its own filename. Later parts overwrite
    earlier ones at the same path. Images are not validated here.

    Filenames that would resolve outside ``input_dir`` (absolute paths,
    ``..`` segments) are skipped and reported as ``part_rejected``.

    Returns:
        Relative paths written, in processing order.

    Raises:
        CorruptArchive: If a zip part cannot be read.
    """
    events = events or LoggingEventSink()
    written: List[str] = []
    for part in parts:
        if not part.filename:
            continue
        if resolve_inside(input_dir, part.filename) is None:
            events.emit("part_rejected", filename=part.filename, reason="unsafe path")
            continue
        if is_archive_name(part.filename):
            members = extract_all(part.data, input_dir)
            events.emit("archive_extracted", filename=part.filename, entries=len(members))
            written.extend(members)
        else:
            save_bytes(input_dir, part.filename, part.data)
            events.emit("part_written", filename=part.filename, size=len(part.data))
            written.append(part.filename)
    return written
