"""
Health check endpoint.
"""
from fastapi import APIRouter, Depends
from datetime import datetime
import logging

from app.models.schemas import HealthCheckResponse
from app.routers.document import get_document_store, get_producer
from app.services.document_store import DocumentStore
from app.services.producer import InfographicProducer

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=HealthCheckResponse)
async def health_check(
    store: DocumentStore = Depends(get_document_store),
    producer: InfographicProducer = Depends(get_producer),
):
    """
    Health check endpoint to verify system status.

    Editing works without Ollama; only generate/optimize need it, so an
    unreachable Ollama reports ``degraded`` rather than failing.

    Returns:
        HealthCheckResponse with status of Ollama and the current document version
    """
    ollama_status = "ok"
    try:
        if not await producer.check_health():
            ollama_status = "error"
    except Exception as e:
        logger.error(f"Ollama health check failed: {e}")
        ollama_status = "error"

    overall_status = "healthy" if ollama_status == "ok" else "degraded"

    return HealthCheckResponse(
        status=overall_status,
        ollama=ollama_status,
        document_version=store.version,
        timestamp=datetime.utcnow()
    )
