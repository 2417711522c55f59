"""
Pydantic schemas for API request/response models.
"""
from secure_tx.schemas.secure_record import (
    ALGORITHM_ID,
    SecureRecord,
    EncryptRequest,
    DecryptResponse,
    ServiceInfo,
    HealthResponse,
)

__all__ = [
    "ALGORITHM_ID",
    "SecureRecord",
    "EncryptRequest",
    "DecryptResponse",
    "ServiceInfo",
    "HealthResponse",
]
