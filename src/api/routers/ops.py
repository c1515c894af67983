import os
import logging

from fastapi import APIRouter, Depends, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from api.backend import BackendAPI
from api.dependencies import get_backend

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(backend: BackendAPI = Depends(get_backend)) -> dict:
    """Health check endpoint for container orchestration."""
    return {
        "status": "healthy",
        "profile": os.getenv("DEPLOYMENT_PROFILE", "unknown"),
        "store": type(backend.store).__name__,
        "llm_provider": os.getenv("LLM_PROVIDER", "") or "auto",
    }


@router.get("/metrics")
async def metrics() -> Response:
    """
    Prometheus scrape endpoint.
    """
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
