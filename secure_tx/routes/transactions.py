"""
Transaction endpoints: encrypt, fetch and decrypt SecureRecords.
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool

from secure_tx.routes.error_handlers import INVALID_BODY_DETAIL
from secure_tx.schemas.secure_record import DecryptResponse, EncryptRequest, SecureRecord
from secure_tx.services.envelope_cipher import (
    EnvelopeCipher,
    get_envelope_cipher,
    get_master_key,
)
from secure_tx.services.errors import CipherError
from secure_tx.services.record_store import InMemoryRecordStore, get_record_store
from secure_tx.utils.logger import get_logger

logger = get_logger("transactions")
router = APIRouter()

# Single message for every decryption failure kind
DECRYPTION_FAILED_DETAIL = "Decryption failed: Integrity check failed"


def _require_encryption(
    cipher: Optional[EnvelopeCipher],
    master_key: Optional[bytes],
) -> None:
    if cipher is None or master_key is None:
        logger.error("Encryption requested before service initialization")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Encryption service unavailable"
        )


def _get_record_or_404(store: InMemoryRecordStore, record_id: str) -> SecureRecord:
    record = store.get(record_id)
    if record is None:
        logger.info("Transaction not found", record_id=record_id)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Transaction not found"
        )
    return record


@router.post(
    "/encrypt",
    response_model=SecureRecord,
    status_code=status.HTTP_200_OK,
    summary="Encrypt transaction",
    description="Envelope-encrypt a payload and store the resulting record",
    responses={
        200: {"description": "Record created"},
        400: {"description": "Missing partyId or payload"},
        500: {"description": "Encryption failed"}
    }
)
async def encrypt_transaction(
    body: EncryptRequest,
    cipher: Optional[EnvelopeCipher] = Depends(get_envelope_cipher),
    master_key: Optional[bytes] = Depends(get_master_key),
    store: InMemoryRecordStore = Depends(get_record_store),
) -> SecureRecord:
    """
    Encrypt a payload for a party.

    Args:
        body: partyId and payload

    Returns:
        The stored SecureRecord (ciphertext only, no plaintext)
    """
    if not body.party_id or not body.party_id.strip() or body.payload is None:
        logger.warning("Encrypt request missing partyId or payload")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=INVALID_BODY_DETAIL
        )

    _require_encryption(cipher, master_key)

    try:
        record = await run_in_threadpool(cipher.encrypt, body.party_id, body.payload, master_key)
    except ValueError:
        logger.warning("Encrypt request payload is not JSON-serializable")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=INVALID_BODY_DETAIL
        )
    except CipherError as e:
        logger.error(
            "Encryption failed",
            party_id=body.party_id,
            error=type(e).__name__,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Encryption failed"
        )

    store.save(record)
    logger.info("Transaction encrypted", record_id=record.id, party_id=record.party_id)

    return record


@router.get(
    "/{record_id}",
    response_model=SecureRecord,
    summary="Get transaction",
    description="Fetch a stored record without decrypting it",
    responses={
        200: {"description": "Record found"},
        404: {"description": "Transaction not found"}
    }
)
async def get_transaction(
    record_id: str,
    store: InMemoryRecordStore = Depends(get_record_store),
) -> SecureRecord:
    """Return the stored ciphertext record."""
    return _get_record_or_404(store, record_id)


@router.post(
    "/{record_id}/decrypt",
    response_model=DecryptResponse,
    summary="Decrypt transaction",
    description="Decrypt a stored record and return it with its payload",
    responses={
        200: {"description": "Record decrypted"},
        400: {"description": "Decryption failed"},
        404: {"description": "Transaction not found"}
    }
)
async def decrypt_transaction(
    record_id: str,
    cipher: Optional[EnvelopeCipher] = Depends(get_envelope_cipher),
    master_key: Optional[bytes] = Depends(get_master_key),
    store: InMemoryRecordStore = Depends(get_record_store),
) -> DecryptResponse:
    """
    Decrypt a stored record.

    Every cipher failure (tampering, wrong key, malformed field, corrupt
    payload) maps to the same 400 response.
    """
    record = _get_record_or_404(store, record_id)
    _require_encryption(cipher, master_key)

    try:
        payload = await run_in_threadpool(cipher.decrypt, record, master_key)
    except CipherError as e:
        logger.warning(
            "Decryption failed",
            record_id=record_id,
            kind=e.kind,
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=DECRYPTION_FAILED_DETAIL
        )

    logger.info("Transaction decrypted", record_id=record_id)

    return DecryptResponse(**record.model_dump(), decrypted_payload=payload)
