"""Image manipulation utilities.

This module wraps the one image operation the pipeline needs, a width
bounded resize followed by a re-encode, using Pillow. Everything Pillow
raises is translated into the pipeline's own ``DecodeError`` and
``UnsupportedFormat`` so callers never depend on Pillow exception types.
"""

from __future__ import annotations

from io import BytesIO
from typing import Tuple

from PIL import Image, UnidentifiedImageError  # type: ignore[import]

from .errors import DecodeError, UnsupportedFormat


def _open_image(data: bytes) -> Image.Image:
    """Open raw image bytes with Pillow and normalise the mode for encoding.

    Animated sources (gif, webp) contribute their first frame. Images with
    transparency keep an alpha channel; everything else becomes RGB.
    """
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError, SyntaxError, EOFError, ValueError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"Cannot decode image: {exc}") from exc
    has_alpha = "A" in img.getbands() or "transparency" in img.info
    if has_alpha and img.mode != "RGBA":
        img = img.convert("RGBA")
    elif not has_alpha and img.mode != "RGB":
        img = img.convert("RGB")
    return img


def target_size(size: Tuple[int, int], max_width: int) -> Tuple[int, int]:
    """Return the output size for ``size`` bounded by ``max_width``.

    The height follows the source aspect ratio and the image is never
    enlarged past its native width.
    """
    width, height = size
    if width <= max_width:
        return width, height
    new_height = max(1, round(height * max_width / width))
    return max_width, new_height


def _check_format(fmt: str) -> str:
    name = fmt.upper()
    Image.init()
    if name not in Image.SAVE:
        raise UnsupportedFormat(f"Output format '{fmt}' is not supported by this Pillow build")
    return name


def resize_encode(data: bytes, max_width: int, fmt: str = "webp", quality: int = 85) -> bytes:
    """Resize an image so that its width does not exceed ``max_width``.

    Args:
        data: Raw source image bytes.
        max_width: Upper bound for the output width, in pixels.
        fmt: Output format name understood by Pillow, e.g. ``webp``.
        quality: Lossy encoder quality.

    Returns:
        The re-encoded image bytes.

    Raises:
        DecodeError: If ``data`` is not a readable image.
        UnsupportedFormat: If Pillow cannot write ``fmt``.
    """
    if max_width <= 0:
        raise ValueError("max_width must be positive")
    name = _check_format(fmt)
    img = _open_image(data)
    size = target_size(img.size, max_width)
    if size != img.size:
        img = img.resize(size, Image.LANCZOS)
    buffer = BytesIO()
    try:
        img.save(buffer, format=name, quality=quality)
    except (OSError, ValueError) as exc:
        raise UnsupportedFormat(f"Cannot encode image as {fmt}: {exc}") from exc
    return buffer.getvalue()


def webp_supported() -> bool:
    """Return True when the installed Pillow can encode webp."""
    Image.init()
    return "WEBP" in Image.SAVE
