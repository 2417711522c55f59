"""
Exception taxonomy for the envelope cipher.

Every error carries a ``kind`` tag so callers can branch on the failure class
without matching on message text. None of them is transient: a caller must
never retry an operation that raised one of these.
"""


class CipherError(Exception):
    """Base exception for envelope cipher errors."""

    kind = "cipher_error"


class InvalidKeyLength(CipherError):
    """Master key is not exactly 32 bytes (configuration defect)."""

    kind = "invalid_key_length"


class MalformedRecord(CipherError):
    """A record field cannot be decoded to the byte length its role requires."""

    kind = "malformed_record"


class IntegrityCheckFailed(CipherError):
    """
    An authentication tag did not verify at either layer.

    Wrong master key and tampered ciphertext are reported identically.
    """

    kind = "integrity_check_failed"

    def __init__(self, message: str = "Integrity check failed"):
        super().__init__(message)


class CorruptPayload(CipherError):
    """Authenticated plaintext is not a valid encoded payload."""

    kind = "corrupt_payload"


class EncryptionError(CipherError):
    """Unexpected low-level failure while sealing a record."""

    kind = "encryption_error"
