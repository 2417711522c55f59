"""
Canonical JSON encoding of transaction payloads.

The envelope cipher works on bytes only; this module owns the mapping
between structured payloads and the plaintext bytes that get encrypted.
"""
import json
from typing import Any

from secure_tx.services.errors import CorruptPayload


def encode_payload(value: Any) -> bytes:
    """
    Serialize a payload to compact UTF-8 JSON.

    Args:
        value: Any JSON-serializable value

    Returns:
        Encoded plaintext bytes

    Raises:
        ValueError: If the value cannot be represented as JSON
    """
    try:
        text = json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Payload is not JSON-serializable: {e}") from e
    return text.encode("utf-8")


def decode_payload(data: bytes) -> Any:
    """
    Parse plaintext bytes back into a structured payload.

    Raises:
        CorruptPayload: If the bytes are not valid UTF-8 JSON
    """
    try:
        return json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CorruptPayload("Decrypted payload is not valid JSON") from e
