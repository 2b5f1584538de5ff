"""Request orchestration.

``Orchestrator.handle`` runs one buffered upload request through the
pipeline::

    validate -> decode -> materialize -> generate -> pack -> respond

Validation and multipart decoding happen before any directory is created,
so rejected requests leave nothing behind. From materialization on, the
work happens inside a ``WorkingArea`` whose directories are removed before
the response is returned, whatever the outcome.

Error responses are JSON documents ``{"error": "..."}``. A ``stack`` key
with the formatted traceback is added only when ``DEBUG_ERRORS`` is set.

``handler`` adapts the serverless event/response dictionaries to
``RawRequest``/``HandlerResponse``.

Environment variables:
    OUTPUT_ARCHIVE_NAME: Download filename of the result archive.
    DEBUG_ERRORS: Include tracebacks in error responses when truthy.
"""

from __future__ import annotations

import base64
import binascii
import json
import os
import traceback
from typing import Any, Dict, List, Optional

from .archive import pack
from .errors import (
    BadContentType,
    BadRequestBody,
    ImagePackError,
    InputError,
    MethodNotAllowed,
    MissingBoundary,
    NoFilesUploaded,
    WorkingAreaError,
)
from .events import EventSink, LoggingEventSink
from .materialize import materialize
from .models import FilePart, HandlerResponse, RawRequest
from .multipart import MULTIPART_MARKER, decode, extract_boundary
from .storage import WorkingArea
from .variants import VariantGenerator

OUTPUT_ARCHIVE_NAME: str = os.getenv("OUTPUT_ARCHIVE_NAME", "diag360-images.zip")
DEBUG_ERRORS: bool = os.getenv("DEBUG_ERRORS", "").lower() in {"1", "true", "yes", "on"}


class Orchestrator:
    """Owns the lifecycle of one request at a time.

    Args:
        work_root: Directory under which working areas are created.
            Defaults to ``storage.WORK_ROOT``.
        events: Event sink shared with the pipeline stages.
        generator: Variant generator; one with default settings is built
            when omitted.
        debug_errors: Include tracebacks in error bodies.
        archive_name: Filename advertised in Content-Disposition.
    """

    def __init__(
        self,
        work_root: Optional[str] = None,
        events: Optional[EventSink] = None,
        generator: Optional[VariantGenerator] = None,
        debug_errors: bool = DEBUG_ERRORS,
        archive_name: str = OUTPUT_ARCHIVE_NAME,
    ) -> None:
        self.work_root = work_root
        self.events = events or LoggingEventSink()
        self.generator = generator or VariantGenerator(events=self.events)
        self.debug_errors = debug_errors
        self.archive_name = archive_name

    def handle(self, request: RawRequest) -> HandlerResponse:
        self.events.emit("request_received", method=request.method)
        try:
            parts = self._decode_request(request)
            archive = self._process(parts)
        except InputError as exc:
            self.events.emit("request_rejected", error_type=type(exc).__name__, error=str(exc))
            return self._error_response(exc)
        except WorkingAreaError as exc:
            self.events.emit(
                "request_failed", error_type=type(exc).__name__, error=str(exc), detail=exc.detail
            )
            return self._error_response(exc)
        except Exception as exc:
            self.events.emit("request_failed", error_type=type(exc).__name__, error=str(exc))
            return self._error_response(exc)

        self.events.emit("request_completed", size=len(archive))
        return HandlerResponse(
            statusCode=200,
            headers={
                "Content-Type": "application/zip",
                "Content-Disposition": f'attachment; filename="{self.archive_name}"',
            },
            body=base64.b64encode(archive).decode("ascii"),
            isBase64Encoded=True,
        )

    def _decode_request(self, request: RawRequest) -> List[FilePart]:
        if request.method.upper() != "POST":
            raise MethodNotAllowed(request.method)

        content_type = request.header("content-type")
        if not content_type or MULTIPART_MARKER not in content_type.lower():
            raise BadContentType("Content-Type must be multipart/form-data")

        boundary = extract_boundary(content_type)
        if not boundary:
            raise MissingBoundary("No boundary found in Content-Type")

        try:
            body = base64.b64decode(request.body)
        except (binascii.Error, ValueError) as exc:
            raise BadRequestBody(f"Request body is not valid base64: {exc}") from exc

        parts = decode(body, boundary)
        self.events.emit("parts_decoded", count=len(parts), size=len(body))
        if not parts:
            raise NoFilesUploaded("No files uploaded")
        return parts

    def _process(self, parts: List[FilePart]) -> bytes:
        with WorkingArea(self.work_root, events=self.events) as area:
            materialize(parts, area.input_dir, events=self.events)
            self.generator.generate(area.input_dir, area.output_dir)
            archive = pack(area.output_dir)
            self.events.emit("archive_packed", size=len(archive))
        return archive

    def _error_response(self, exc: Exception) -> HandlerResponse:
        status = exc.status_code if isinstance(exc, ImagePackError) else 500
        payload: Dict[str, Any] = {"error": str(exc) or type(exc).__name__}
        if self.debug_errors:
            payload["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return HandlerResponse(
            statusCode=status,
            headers={"Content-Type": "application/json"},
            body=json.dumps(payload),
            isBase64Encoded=False,
        )


def request_from_event(event: Dict[str, Any]) -> RawRequest:
    """Build a ``RawRequest`` from a serverless function event."""
    body = event.get("body") or ""
    if event.get("isBase64Encoded") is False and body:
        body = base64.b64encode(body.encode("utf-8")).decode("ascii")
    return RawRequest(
        method=event.get("httpMethod") or event.get("method") or "",
        headers=event.get("headers") or {},
        body=body,
    )


def handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    """Serverless entry point: event dict in, response dict out."""
    return Orchestrator().handle(request_from_event(event)).model_dump()
