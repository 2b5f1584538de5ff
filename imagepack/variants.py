"""Variant generation.

Every recognised source image in the input directory is resized to each
rung of the size ladder and written as webp into every category folder of
the output directory::

    <output>/<category>/<basename><suffix>.webp

e.g. ``hero/photo-xl.webp``. With seven categories and four sizes one
source image yields 28 files. Resizing never enlarges: a 100px wide source
produces 100px wide variants on every rung.

A source that cannot be read, decoded or encoded only loses its own
variants. Failures are reported as ``variant_failed`` events and the batch
carries on.

Environment variables:
    WEBP_QUALITY: Encoder quality for generated variants (default 85).
    VARIANT_WORKERS: Number of source images processed concurrently
        (default 1, sequential).
    PROCESSING_TIMEOUT_SECONDS: Generation deadline, checked before each
        source image (default 0, no deadline).
"""

from __future__ import annotations

import os
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Sequence, Set

from .errors import NoImagesFoundError, ProcessingError, ProcessingTimeout
from .events import EventSink, LoggingEventSink
from .image_ops import resize_encode
from .models import ImageVariantSpec

WEBP_QUALITY: int = int(os.getenv("WEBP_QUALITY", "85"))
VARIANT_WORKERS: int = int(os.getenv("VARIANT_WORKERS", "1"))
PROCESSING_TIMEOUT_SECONDS: float = float(os.getenv("PROCESSING_TIMEOUT_SECONDS", "0"))

OUTPUT_FORMAT = "webp"
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".gif")

CATEGORIES = ("hero", "features", "gallery", "thumbnails", "backgrounds", "icons", "misc")

SIZE_LADDER = (
    ImageVariantSpec(width=1920, suffix="-xl"),
    ImageVariantSpec(width=1280, suffix="-lg"),
    ImageVariantSpec(width=768, suffix="-md"),
    ImageVariantSpec(width=480, suffix="-sm"),
)

Encoder = Callable[[bytes, int, str, int], bytes]


def is_image_name(filename: str) -> bool:
    return filename.lower().endswith(IMAGE_EXTENSIONS)


def variant_path(category: str, basename: str, spec: ImageVariantSpec) -> str:
    """Archive-style relative path of one variant."""
    return f"{category}/{basename}{spec.suffix}.{OUTPUT_FORMAT}"


def find_images(input_dir: str) -> List[str]:
    """Top-level image files of ``input_dir``, in lexical order."""
    with os.scandir(input_dir) as it:
        names = [e.name for e in it if e.is_file() and is_image_name(e.name)]
    return sorted(names)


def group_by_basename(images: Sequence[str]) -> List[List[str]]:
    """Group filenames that share a basename, keeping lexical order.

    Sources in one group write to the same variant paths, so a group is
    always processed by a single worker and the last name in it wins.
    """
    groups: Dict[str, List[str]] = {}
    for name in images:
        groups.setdefault(os.path.splitext(name)[0], []).append(name)
    return list(groups.values())


class VariantGenerator:
    """Produce the category × size matrix of webp variants for a directory."""

    def __init__(
        self,
        categories: Sequence[str] = CATEGORIES,
        sizes: Sequence[ImageVariantSpec] = SIZE_LADDER,
        quality: int = WEBP_QUALITY,
        workers: int = VARIANT_WORKERS,
        timeout: float = PROCESSING_TIMEOUT_SECONDS,
        events: Optional[EventSink] = None,
        encoder: Encoder = resize_encode,
    ) -> None:
        self.categories = tuple(categories)
        self.sizes = tuple(sizes)
        self.quality = quality
        self.workers = max(1, workers)
        self.timeout = timeout
        self.events = events or LoggingEventSink()
        self._encode = encoder
        self._deadline: Optional[float] = None

    @property
    def variants_per_image(self) -> int:
        return len(self.categories) * len(self.sizes)

    def prepare(self, output_dir: str) -> None:
        """Create every category folder. Safe to call repeatedly."""
        for category in self.categories:
            os.makedirs(os.path.join(output_dir, category), exist_ok=True)

    def generate(self, input_dir: str, output_dir: str) -> int:
        """Write all variants for the images in ``input_dir``.

        Returns:
            The number of distinct variant files written.

        Raises:
            NoImagesFoundError: If ``input_dir`` holds no recognised image.
            ProcessingTimeout: If the configured deadline expires.
        """
        self.prepare(output_dir)
        images = find_images(input_dir)
        self.events.emit("images_found", count=len(images))
        if not images:
            raise NoImagesFoundError("No images found in uploaded files")

        self._deadline = time.monotonic() + self.timeout if self.timeout > 0 else None
        groups = group_by_basename(images)
        if self.workers == 1:
            produced = sum(self._process_group(input_dir, output_dir, group) for group in groups)
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                futures = [
                    pool.submit(self._process_group, input_dir, output_dir, group)
                    for group in groups
                ]
                try:
                    produced = sum(f.result() for f in futures)
                except ProcessingTimeout:
                    for f in futures:
                        f.cancel()
                    raise

        self.events.emit(
            "variants_generated",
            images=len(images),
            produced=produced,
            expected=len(images) * self.variants_per_image,
        )
        return produced

    def _check_deadline(self) -> None:
        if self._deadline is not None and time.monotonic() > self._deadline:
            raise ProcessingTimeout(f"Variant generation exceeded {self.timeout:g}s")

    def _process_group(self, input_dir: str, output_dir: str, group: List[str]) -> int:
        written: Set[str] = set()
        for name in group:
            written.update(self._process_image(input_dir, output_dir, name))
        return len(written)

    def _process_image(self, input_dir: str, output_dir: str, filename: str) -> List[str]:
        self._check_deadline()
        basename = os.path.splitext(filename)[0]
        try:
            with open(os.path.join(input_dir, filename), "rb") as f:
                source = f.read()
        except OSError as exc:
            self.events.emit("variant_failed", source=filename, variant="*", error=str(exc))
            return []

        written: List[str] = []
        for spec in self.sizes:
            # the encoded bytes are identical for every category
            try:
                encoded = self._encode(source, spec.width, OUTPUT_FORMAT, self.quality)
            except ProcessingError as exc:
                for category in self.categories:
                    self._report_failure(filename, variant_path(category, basename, spec), exc)
                continue
            for category in self.categories:
                relative = variant_path(category, basename, spec)
                try:
                    with open(os.path.join(output_dir, *relative.split("/")), "wb") as f:
                        f.write(encoded)
                except OSError as exc:
                    self._report_failure(filename, relative, exc)
                    continue
                written.append(relative)

        self.events.emit("image_processed", source=filename, produced=len(written))
        return written

    def _report_failure(self, source: str, variant: str, exc: Exception) -> None:
        self.events.emit(
            "variant_failed",
            source=source,
            variant=variant,
            error_type=type(exc).__name__,
            error=str(exc),
        )


def generate(input_dir: str, output_dir: str, events: Optional[EventSink] = None) -> int:
    """Generate variants with the default ladder and categories."""
    return VariantGenerator(events=events).generate(input_dir, output_dir)
