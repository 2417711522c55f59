"""
Envelope Cipher for transaction records.

Implements the envelope encryption pattern where:
- Each record gets a fresh DEK (Data Encryption Key)
- The DEK encrypts the payload with AES-256-GCM
- The DEK itself is encrypted ("wrapped") under the master key with AES-256-GCM
- Only the wrapped DEK is stored in the record

The master key is never held by the cipher. It is passed into every
encrypt/decrypt call so the cipher has no hidden dependency on process state.

Usage:
    cipher = create_envelope_cipher()

    record = cipher.encrypt("party_123", {"amount": 5000}, master_key)
    payload = cipher.decrypt(record, master_key)
"""

import binascii
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from fastapi import Request

from secure_tx.schemas.secure_record import ALGORITHM_ID, SecureRecord
from secure_tx.services.errors import (
    EncryptionError,
    IntegrityCheckFailed,
    InvalidKeyLength,
    MalformedRecord,
)
from secure_tx.services.payload_codec import decode_payload, encode_payload
from secure_tx.utils.logger import get_logger

logger = get_logger("encryption.envelope")

# Constants
MASTER_KEY_LENGTH = 32  # AES-256
DEK_LENGTH = 32  # AES-256
NONCE_LENGTH = 12  # 96 bits for GCM
TAG_LENGTH = 16  # 128-bit GCM tag
AAD_LENGTH_PREFIX = 4  # Big-endian byte length before each AAD part

# Expected decoded byte length per hex field (None = any length)
RECORD_FIELD_LENGTHS = {
    "payload_nonce": NONCE_LENGTH,
    "payload_ct": None,
    "payload_tag": TAG_LENGTH,
    "dek_wrap_nonce": NONCE_LENGTH,
    "dek_wrapped": DEK_LENGTH,
    "dek_wrap_tag": TAG_LENGTH,
}


def validate_master_key(master_key: bytes) -> None:
    """
    Check that a master key is exactly 32 bytes.

    Raises:
        InvalidKeyLength: If the key is not bytes of length 32
    """
    if not isinstance(master_key, (bytes, bytearray)) or len(master_key) != MASTER_KEY_LENGTH:
        raise InvalidKeyLength(
            f"Master key must be exactly {MASTER_KEY_LENGTH} bytes"
        )


def parse_master_key_hex(value: str) -> bytes:
    """
    Decode a master key supplied as 64 hex characters.

    Args:
        value: Hex string from configuration

    Returns:
        32 raw key bytes

    Raises:
        InvalidKeyLength: If the value is not exactly 64 hex characters
    """
    if not value or len(value) != MASTER_KEY_LENGTH * 2:
        raise InvalidKeyLength(
            f"Master key must be {MASTER_KEY_LENGTH} bytes "
            f"({MASTER_KEY_LENGTH * 2} hex chars)"
        )
    try:
        return binascii.unhexlify(value)
    except (binascii.Error, ValueError) as e:
        raise InvalidKeyLength("Master key is not valid hex") from e


def _seal(key, plaintext, aad: Optional[bytes]) -> Tuple[bytes, bytes, bytes]:
    """AES-256-GCM encrypt under a fresh nonce. Returns (nonce, ciphertext, tag)."""
    nonce = os.urandom(NONCE_LENGTH)
    sealed = AESGCM(key).encrypt(nonce, plaintext, aad)
    return nonce, sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]


def _open(key, nonce: bytes, ciphertext: bytes, tag: bytes, aad: Optional[bytes]) -> bytes:
    """AES-256-GCM decrypt and verify. Raises InvalidTag on any mismatch."""
    return AESGCM(key).decrypt(nonce, ciphertext + tag, aad)


def _wipe(buffer: bytearray) -> None:
    for i in range(len(buffer)):
        buffer[i] = 0


def _decode_field(record: SecureRecord, name: str) -> bytes:
    """Hex-decode one record field and check its length."""
    value = getattr(record, name)
    try:
        raw = binascii.unhexlify(value)
    except (binascii.Error, ValueError, TypeError) as e:
        raise MalformedRecord(f"Field {name} is not valid hex") from e

    expected = RECORD_FIELD_LENGTHS[name]
    if expected is not None and len(raw) != expected:
        raise MalformedRecord(
            f"Field {name} must be {expected} bytes, got {len(raw)}"
        )
    return raw


class EnvelopeCipher:
    """
    Stateless envelope cipher producing and opening SecureRecords.

    Holds configuration only (key epoch, AAD binding). Every operation
    draws its own randomness and touches nothing but its arguments, so one
    instance can be shared freely across threads and tasks.

    AAD binding:
        With ``bind_record_aad=True`` the record ``id`` and ``partyId`` are
        authenticated as associated data on both layers, so relabelling a
        record fails decryption. Records sealed with binding on must be
        opened with binding on, and vice versa.

    Example:
        >>> cipher = EnvelopeCipher()
        >>> record = cipher.encrypt("party_123", {"amount": 5000}, bytes(32))
        >>> cipher.decrypt(record, bytes(32))
        {'amount': 5000}
    """

    def __init__(self, key_version: int = 1, bind_record_aad: bool = False):
        """
        Args:
            key_version: Master key epoch written to (and required on) records
            bind_record_aad: Authenticate id and partyId as AAD
        """
        self.key_version = key_version
        self.bind_record_aad = bind_record_aad
        logger.info(
            "EnvelopeCipher initialized",
            algorithm=ALGORITHM_ID,
            key_version=key_version,
            bind_record_aad=bind_record_aad,
        )

    def _associated_data(self, record_id: str, party_id: str) -> Optional[bytes]:
        if not self.bind_record_aad:
            return None
        # Each part is length-prefixed so no split of one id+partyId pair matches another
        aad = b""
        for part in (record_id, party_id):
            encoded = part.encode("utf-8")
            aad += len(encoded).to_bytes(AAD_LENGTH_PREFIX, "big") + encoded
        return aad

    # =========================================================================
    # Encryption
    # =========================================================================

    def encrypt(self, party_id: str, payload: Any, master_key: bytes) -> SecureRecord:
        """
        Encrypt a structured payload into a SecureRecord.

        Args:
            party_id: Owner/tenant tag, stored in clear
            payload: JSON-serializable value
            master_key: 32-byte master key

        Returns:
            Newly created SecureRecord

        Raises:
            InvalidKeyLength: If master_key is not 32 bytes
            ValueError: If payload is not JSON-serializable
            EncryptionError: If the underlying cipher fails
        """
        validate_master_key(master_key)
        return self.encrypt_bytes(party_id, encode_payload(payload), master_key)

    def encrypt_bytes(self, party_id: str, plaintext: bytes, master_key: bytes) -> SecureRecord:
        """
        Encrypt pre-serialized plaintext bytes into a SecureRecord.

        The master key is validated before any randomness is drawn.

        Raises:
            InvalidKeyLength: If master_key is not 32 bytes
            EncryptionError: If the underlying cipher fails
        """
        validate_master_key(master_key)

        record_id = str(uuid.uuid4())
        aad = self._associated_data(record_id, party_id)
        dek = bytearray(os.urandom(DEK_LENGTH))

        try:
            payload_nonce, payload_ct, payload_tag = _seal(dek, plaintext, aad)
            wrap_nonce, dek_wrapped, wrap_tag = _seal(master_key, dek, aad)
        except Exception as e:
            logger.error(
                "Failed to encrypt record",
                record_id=record_id,
                error=type(e).__name__,
            )
            raise EncryptionError("Failed to encrypt record") from e
        finally:
            _wipe(dek)

        record = SecureRecord(
            id=record_id,
            party_id=party_id,
            created_at=datetime.now(timezone.utc),
            payload_nonce=payload_nonce.hex(),
            payload_ct=payload_ct.hex(),
            payload_tag=payload_tag.hex(),
            dek_wrap_nonce=wrap_nonce.hex(),
            dek_wrapped=dek_wrapped.hex(),
            dek_wrap_tag=wrap_tag.hex(),
            alg=ALGORITHM_ID,
            mk_version=self.key_version,
        )

        logger.debug(
            "Encrypted record",
            record_id=record_id,
            party_id=party_id,
            payload_bytes=len(plaintext),
        )

        return record

    # =========================================================================
    # Decryption
    # =========================================================================

    def decrypt(self, record: SecureRecord, master_key: bytes) -> Any:
        """
        Decrypt a SecureRecord back into its structured payload.

        Args:
            record: Record produced by encrypt (fields treated as untrusted)
            master_key: 32-byte master key of the same epoch

        Returns:
            The original payload value

        Raises:
            InvalidKeyLength: If master_key is not 32 bytes
            MalformedRecord: If a field is not decodable to its expected length
            IntegrityCheckFailed: If either authentication tag does not verify
            CorruptPayload: If the authenticated plaintext is not valid JSON
        """
        return decode_payload(self.decrypt_bytes(record, master_key))

    def decrypt_bytes(self, record: SecureRecord, master_key: bytes) -> bytes:
        """
        Decrypt a SecureRecord to its plaintext bytes.

        The key-wrap layer is always processed first; the payload layer is
        never attempted if the DEK fails to authenticate.

        Raises:
            InvalidKeyLength: If master_key is not 32 bytes
            MalformedRecord: If a field is not decodable to its expected length
            IntegrityCheckFailed: If either authentication tag does not verify
        """
        validate_master_key(master_key)

        if record.alg != ALGORITHM_ID:
            raise MalformedRecord(f"Unsupported algorithm: {record.alg}")
        if record.mk_version != self.key_version:
            raise MalformedRecord(f"Unsupported master key version: {record.mk_version}")

        fields = {name: _decode_field(record, name) for name in RECORD_FIELD_LENGTHS}
        aad = self._associated_data(record.id, record.party_id)

        try:
            dek = bytearray(_open(
                master_key,
                fields["dek_wrap_nonce"],
                fields["dek_wrapped"],
                fields["dek_wrap_tag"],
                aad,
            ))
        except InvalidTag:
            logger.warning(
                "Integrity check failed",
                record_id=record.id,
                layer="key_wrap",
            )
            raise IntegrityCheckFailed() from None

        try:
            plaintext = _open(
                dek,
                fields["payload_nonce"],
                fields["payload_ct"],
                fields["payload_tag"],
                aad,
            )
        except InvalidTag:
            logger.warning(
                "Integrity check failed",
                record_id=record.id,
                layer="payload",
            )
            raise IntegrityCheckFailed() from None
        finally:
            _wipe(dek)

        logger.debug("Decrypted record", record_id=record.id)

        return plaintext


# =============================================================================
# Factory Function
# =============================================================================


def create_envelope_cipher() -> EnvelopeCipher:
    """
    Factory function to create the envelope cipher from application settings.

    Returns:
        Configured EnvelopeCipher
    """
    from secure_tx.config import settings

    return EnvelopeCipher(
        key_version=settings.MASTER_KEY_VERSION,
        bind_record_aad=settings.BIND_RECORD_AAD,
    )


# =============================================================================
# Dependency Injection Helpers
# =============================================================================


def get_envelope_cipher(request: Request) -> Optional[EnvelopeCipher]:
    """
    Dependency to get the envelope cipher from app state.

    Returns None if the application has not initialized encryption.
    """
    return getattr(request.app.state, "envelope_cipher", None)


def get_master_key(request: Request) -> Optional[bytes]:
    """
    Dependency to get the master key loaded at startup.

    Returns None if the application has not loaded a master key.
    """
    return getattr(request.app.state, "master_key", None)
