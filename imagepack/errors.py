"""Exception types raised by the image bundle pipeline.

The orchestrator catches these and translates them into boundary
responses. ``status_code`` carries the HTTP status the error maps to.
"""

from __future__ import annotations


class ImagePackError(Exception):
    """Base class for every error raised by the pipeline."""

    status_code: int = 500


# --- Input errors (client caused) ---

class InputError(ImagePackError):
    """The request cannot be processed as sent."""


class MethodNotAllowed(InputError):
    status_code = 405

    def __init__(self, method: str = "") -> None:
        super().__init__("Method Not Allowed")
        self.method = method


class BadContentType(InputError):
    """Content-Type missing or not multipart/form-data."""


class MissingBoundary(InputError):
    """Content-Type has no usable boundary parameter."""


class BadRequestBody(InputError):
    """Request body is not valid base64."""


class NoFilesUploaded(InputError):
    """The multipart body contained no file parts."""


class NoImagesFoundError(InputError):
    """No recognised image extension was found in the input area."""


# --- Processing errors ---

class ProcessingError(ImagePackError):
    """A payload could not be decoded, extracted or encoded."""


class CorruptArchive(ProcessingError):
    """An uploaded archive could not be read."""


class UnsupportedFormat(ProcessingError):
    """The requested output format is not available in the image library."""


class DecodeError(ProcessingError):
    """Source bytes could not be decoded as an image."""


class ProcessingTimeout(ProcessingError):
    """The variant generation deadline expired."""


# --- Environment errors ---

class WorkingAreaError(ImagePackError):
    """The scratch directories for a request could not be created."""

    def __init__(self, message: str = "Cannot create working area", detail: str = "") -> None:
        super().__init__(message)
        # server-side paths; logged, never sent to the client
        self.detail = detail
