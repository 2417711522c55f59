"""
Pydantic schemas for envelope-encrypted transaction records.

A SecureRecord carries two independent AES-256-GCM layers:
- payload layer: the serialized payload encrypted under a per-record DEK
- key-wrap layer: the DEK encrypted under the master key

All byte fields are hex-encoded for JSON transport and storage.
"""
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ALGORITHM_ID = "AES-256-GCM"


class SecureRecord(BaseModel):
    """Immutable envelope-encrypted transaction record."""
    id: str = Field(description="Record ID (UUID4), not secret")
    party_id: str = Field(alias="partyId", description="Owner/tenant tag stored in clear")
    created_at: datetime = Field(alias="createdAt", description="Creation time (UTC), informational")
    payload_nonce: str = Field(description="Hex, 12-byte payload AEAD nonce")
    payload_ct: str = Field(description="Hex, payload ciphertext without tag")
    payload_tag: str = Field(description="Hex, 16-byte payload authentication tag")
    dek_wrap_nonce: str = Field(description="Hex, 12-byte key-wrap AEAD nonce")
    dek_wrapped: str = Field(description="Hex, 32-byte wrapped DEK without tag")
    dek_wrap_tag: str = Field(description="Hex, 16-byte key-wrap authentication tag")
    alg: Literal["AES-256-GCM"] = Field(default=ALGORITHM_ID, description="AEAD construction")
    mk_version: int = Field(default=1, description="Master key epoch that wrapped the DEK")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class EncryptRequest(BaseModel):
    """Request to encrypt a transaction payload."""
    party_id: Optional[str] = Field(None, alias="partyId", description="Owner/tenant tag")
    payload: Any = Field(None, description="Arbitrary JSON value to encrypt")

    model_config = ConfigDict(populate_by_name=True)


class DecryptResponse(SecureRecord):
    """Stored record together with its decrypted payload."""
    decrypted_payload: Any = Field(alias="decryptedPayload", description="Decrypted JSON value")


class ServiceInfo(BaseModel):
    """Root endpoint response."""
    status: str
    service: str


class HealthResponse(BaseModel):
    """Schema for health check endpoint response."""
    status: str
    encryption: str
    records: int
    timestamp: datetime
