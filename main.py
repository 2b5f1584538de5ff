"""HTTP entry point for the image bundle service.

``POST /process-images`` accepts a multipart upload of images and/or zip
archives and answers with a zip of webp variants. The raw request is
handed to the same ``Orchestrator`` the serverless ``handler`` uses, so
both entry points share validation, error bodies and cleanup.
"""

import base64
import logging
import os

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
import PIL

from imagepack.events import LoggingEventSink
from imagepack.handler import Orchestrator
from imagepack.image_ops import webp_supported
from imagepack.models import RawRequest, SelfTestResponse

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# --- Environment & Config ---
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# --- App Init ---
app = FastAPI(title="Image Bundle Service")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_orchestrator() -> Orchestrator:
    """Build the orchestrator for one request. Overridden in tests."""
    return Orchestrator(events=LoggingEventSink())


# --- Processing Endpoint ---
@app.api_route("/process-images", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def process_images_endpoint(request: Request):
    raw = RawRequest(
        method=request.method,
        headers=dict(request.headers),
        body=base64.b64encode(await request.body()).decode("ascii"),
    )
    result = await run_in_threadpool(get_orchestrator().handle, raw)
    if result.isBase64Encoded:
        content = base64.b64decode(result.body)
    else:
        content = result.body.encode("utf-8")
    return Response(
        content=content,
        status_code=result.statusCode,
        headers={k: v for k, v in result.headers.items() if k.lower() != "content-type"},
        media_type=result.headers.get("Content-Type"),
    )


# --- Health ---
@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/self-test")
async def self_test():
    """Check that the image library loads and can encode webp."""
    try:
        webp = webp_supported()
    except Exception as e:
        logger.error("Self test failed: %s", e)
        payload = SelfTestResponse(success=False, error=str(e))
        return JSONResponse(status_code=500, content=payload.model_dump())
    payload = SelfTestResponse(
        success=True,
        pillow=PIL.__version__,
        webp=webp,
        message="All tests passed!" if webp else "Pillow loaded but webp encoding is unavailable.",
    )
    return payload.model_dump()
