import asyncio
import logging
import mimetypes
import time
from typing import Literal

from fastapi import APIRouter, Depends, File, Query, UploadFile

from api.backend import BackendAPI
from api.dependencies import MAX_UPLOAD_BYTES, get_backend
from api.metrics import (
    DOCUMENTS_INGESTED_TOTAL,
    EXTRACTION_FAILURES_TOTAL,
    REQUEST_LATENCY_SECONDS,
    REQUESTS_TOTAL,
    TASKS_EXTRACTED_TOTAL,
)
from cleanops.errors import CleanOpsError, FileTooLarge
from extraction.text_extractor import DOCX_MIME

router = APIRouter()
logger = logging.getLogger(__name__)

_GENERIC_TYPES = {"", "application/octet-stream", "binary/octet-stream"}

mimetypes.add_type(DOCX_MIME, ".docx")


def _resolve_mime(upload: UploadFile) -> str:
    """Browsers send DOCX as octet-stream now and then; fall back to the file name."""
    declared = (upload.content_type or "").strip()
    if declared.lower() in _GENERIC_TYPES and upload.filename:
        guessed, _ = mimetypes.guess_type(upload.filename)
        return guessed or declared
    return declared


@router.post("/documents")
async def upload_document(
    file: UploadFile = File(...),
    mode: Literal["schedule", "tasks"] = Query("schedule"),
    backend: BackendAPI = Depends(get_backend),
) -> dict:
    start = time.time()
    buffer = await file.read()
    if len(buffer) > MAX_UPLOAD_BYTES:
        REQUESTS_TOTAL.labels(endpoint="/documents", status="rejected").inc()
        raise FileTooLarge(len(buffer), MAX_UPLOAD_BYTES)

    mime_type = _resolve_mime(file)
    logger.info(f"Received upload '{file.filename}' ({mime_type}, {len(buffer)} bytes)")

    try:
        result = await asyncio.to_thread(
            backend.ingest_document, buffer, mime_type, file.filename or "", mode
        )
    except CleanOpsError as e:
        EXTRACTION_FAILURES_TOTAL.labels(kind=e.code).inc()
        REQUESTS_TOTAL.labels(endpoint="/documents", status="failed").inc()
        raise

    extracted = len(result.tasks) if result.schedule is None else len(result.schedule.tasks)

    # Prometheus counters (best-effort)
    try:
        REQUESTS_TOTAL.labels(endpoint="/documents", status="processed").inc()
        REQUEST_LATENCY_SECONDS.labels(endpoint="/documents").observe(time.time() - start)
        DOCUMENTS_INGESTED_TOTAL.labels(method=result.extraction_method).inc()
        TASKS_EXTRACTED_TOTAL.inc(extracted)
    except Exception as e:
        logger.warning(f"Failed to record upload metrics: {e}")

    return {"status": "processed", **result.model_dump(mode="json")}
