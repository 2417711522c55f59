"""
Health check endpoint for monitoring.
"""
from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, HTTPException, status, Depends
from secure_tx.schemas.secure_record import HealthResponse
from secure_tx.services.envelope_cipher import (
    EnvelopeCipher,
    get_envelope_cipher,
    get_master_key,
)
from secure_tx.services.record_store import InMemoryRecordStore, get_record_store
from secure_tx.utils.logger import get_logger

logger = get_logger("health")
router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check that the envelope cipher and master key are loaded",
    responses={
        200: {"description": "Service is healthy"},
        503: {"description": "Service is unhealthy"}
    }
)
async def health_check(
    cipher: Optional[EnvelopeCipher] = Depends(get_envelope_cipher),
    master_key: Optional[bytes] = Depends(get_master_key),
    store: InMemoryRecordStore = Depends(get_record_store),
) -> HealthResponse:
    """
    Health check endpoint.

    Checks:
    - Envelope cipher is initialized
    - Master key was loaded at startup

    Returns:
        HealthResponse with status and timestamp (200 if healthy, 503 if not)
    """
    if cipher is not None and master_key is not None:
        logger.debug("Health check: all systems operational")
        return HealthResponse(
            status="healthy",
            encryption="ready",
            records=len(store),
            timestamp=datetime.now(timezone.utc)
        )

    logger.warning("Health check: encryption not initialized")
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={
            "status": "degraded",
            "encryption": "unavailable",
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    )
