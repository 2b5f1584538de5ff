"""Zip archive helpers.

``extract_all`` and ``build_archive`` are thin wrappers over ``zipfile``
that translate its errors into ``CorruptArchive``. ``pack`` serialises a
whole output directory into one archive buffer.
"""

from __future__ import annotations

import io
import os
import zipfile
import zlib
from typing import Dict, Iterable, Iterator, List, Tuple

from .errors import CorruptArchive

ARCHIVE_EXTENSION = ".zip"


def is_archive_name(filename: str) -> bool:
    return filename.lower().endswith(ARCHIVE_EXTENSION)


def extract_all(archive_bytes: bytes, dest_dir: str) -> List[str]:
    """Expand every entry of a zip archive into ``dest_dir``.

    Archive-internal directories are kept and existing files are
    overwritten. ``zipfile`` drops absolute prefixes and ``..`` segments
    from member names, so nothing is written outside ``dest_dir``.

    Returns:
        Paths of the regular files extracted, relative to ``dest_dir`` and
        /-separated, as written after sanitisation.

    Raises:
        CorruptArchive: If the bytes are not a readable zip archive.
    """
    try:
        with zipfile.ZipFile(io.BytesIO(archive_bytes)) as zf:
            written = []
            for info in zf.infolist():
                target = zf.extract(info, dest_dir)
                if not info.is_dir():
                    written.append(os.path.relpath(target, dest_dir).replace(os.sep, "/"))
            return written
    except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, EOFError, NotImplementedError) as exc:
        raise CorruptArchive(f"Cannot read zip archive: {exc}") from exc


def build_archive(entries: Iterable[Tuple[str, bytes]]) -> bytes:
    """Build a deflated zip archive from ``(path, bytes)`` pairs, in order."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for path, data in entries:
            zf.writestr(path, data)
    return buffer.getvalue()


def list_entries(archive_bytes: bytes) -> Dict[str, bytes]:
    """Return ``{path: bytes}`` for every file entry of an archive."""
    try:
        with zipfile.ZipFile(io.BytesIO(archive_bytes)) as zf:
            return {
                info.filename: zf.read(info)
                for info in zf.infolist()
                if not info.is_dir()
            }
    except (zipfile.BadZipFile, EOFError) as exc:
        raise CorruptArchive(f"Cannot read zip archive: {exc}") from exc


def walk_files(root: str, prefix: str = "") -> Iterator[Tuple[str, str]]:
    """Yield ``(archive_path, filesystem_path)`` for each file under ``root``.

    Depth first, siblings in lexical order. Archive paths always use ``/``.
    """
    with os.scandir(root) as it:
        entries = sorted(it, key=lambda e: e.name)
    for entry in entries:
        archive_path = f"{prefix}/{entry.name}" if prefix else entry.name
        if entry.is_dir(follow_symlinks=False):
            yield from walk_files(entry.path, archive_path)
        elif entry.is_file(follow_symlinks=False):
            yield archive_path, entry.path


def pack(output_dir: str) -> bytes:
    """Serialise every file under ``output_dir`` into one zip archive."""

    def _entries() -> Iterator[Tuple[str, bytes]]:
        for archive_path, fs_path in walk_files(output_dir):
            with open(fs_path, "rb") as f:
                yield archive_path, f.read()

    return build_archive(_entries())
