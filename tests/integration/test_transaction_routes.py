"""
Integration tests for the transaction and health endpoints.
"""
from unittest.mock import patch

import pytest
from httpx import AsyncClient

from secure_tx.main import app


AED_BODY = {"partyId": "party_123", "payload": {"amount": 5000, "currency": "AED"}}


async def _encrypt(client: AsyncClient, body=AED_BODY) -> dict:
    response = await client.post("/tx/encrypt", json=body)
    assert response.status_code == 200
    return response.json()


@pytest.mark.asyncio
async def test_root(client: AsyncClient):
    """Root endpoint identifies the service."""
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "Secure Transaction API"}


@pytest.mark.asyncio
async def test_health_ready(client: AsyncClient):
    """Health reports ready encryption and record count."""
    await _encrypt(client)

    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["encryption"] == "ready"
    assert data["records"] == 1
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_health_degraded_without_key(client: AsyncClient):
    """Health returns 503 when the master key is not loaded."""
    app.state.master_key = None

    response = await client.get("/health")

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_encrypt_returns_record(client: AsyncClient, master_key: bytes):
    """Encrypt returns a ciphertext record and never the payload."""
    data = await _encrypt(client)

    assert data["partyId"] == "party_123"
    assert data["alg"] == "AES-256-GCM"
    assert data["mk_version"] == 1
    for field in ("id", "createdAt", "payload_nonce", "payload_ct", "payload_tag",
                  "dek_wrap_nonce", "dek_wrapped", "dek_wrap_tag"):
        assert field in data
    assert "payload" not in data
    assert "AED" not in response_text(data)
    assert master_key.hex() not in response_text(data)


def response_text(data: dict) -> str:
    return " ".join(str(v) for v in data.values())


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"payload": {"amount": 1}},
        {"partyId": "party_123"},
        {"partyId": "", "payload": {"amount": 1}},
        {"partyId": "   ", "payload": {"amount": 1}},
        {"partyId": "party_123", "payload": None},
        {},
    ],
)
async def test_encrypt_missing_fields(client: AsyncClient, body: dict):
    """Missing partyId or payload is a 400."""
    response = await client.post("/tx/encrypt", json=body)

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing partyId or payload"


@pytest.mark.asyncio
async def test_get_transaction(client: AsyncClient):
    """Stored records can be fetched by id."""
    created = await _encrypt(client)

    response = await client.get(f"/tx/{created['id']}")

    assert response.status_code == 200
    assert response.json() == created


@pytest.mark.asyncio
async def test_get_unknown_transaction(client: AsyncClient):
    response = await client.get("/tx/does-not-exist")

    assert response.status_code == 404
    assert response.json()["detail"] == "Transaction not found"


@pytest.mark.asyncio
async def test_decrypt_transaction(client: AsyncClient):
    """Decrypt returns the record together with the original payload."""
    created = await _encrypt(client)

    response = await client.post(f"/tx/{created['id']}/decrypt")

    assert response.status_code == 200
    data = response.json()
    assert data["decryptedPayload"] == {"amount": 5000, "currency": "AED"}
    assert data["id"] == created["id"]
    assert data["dek_wrapped"] == created["dek_wrapped"]


@pytest.mark.asyncio
async def test_decrypt_unknown_transaction(client: AsyncClient):
    response = await client.post("/tx/does-not-exist/decrypt")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_decrypt_with_rotated_key_fails(client: AsyncClient, other_master_key: bytes):
    """A different master key yields the generic integrity failure."""
    created = await _encrypt(client)
    app.state.master_key = other_master_key

    response = await client.post(f"/tx/{created['id']}/decrypt")

    assert response.status_code == 400
    assert response.json()["detail"] == "Decryption failed: Integrity check failed"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "update",
    [
        {"payload_tag": "00" * 16},
        {"dek_wrap_tag": "00" * 16},
        {"dek_wrapped": "00" * 10},
        {"payload_ct": "not-hex"},
    ],
)
async def test_decrypt_tampered_record_same_error(client: AsyncClient, record_store, update):
    """Tampered and malformed records all map to one error response."""
    created = await _encrypt(client)
    stored = record_store.get(created["id"])
    record_store.save(stored.model_copy(update=update))

    response = await client.post(f"/tx/{created['id']}/decrypt")

    assert response.status_code == 400
    assert response.json()["detail"] == "Decryption failed: Integrity check failed"


@pytest.mark.asyncio
async def test_encrypt_unavailable_without_key(client: AsyncClient):
    """Encryption is refused when the service has no key loaded."""
    app.state.master_key = None

    response = await client.post("/tx/encrypt", json=AED_BODY)

    assert response.status_code == 503


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "path,method,expected",
    [
        ("/tx/does-not-exist", "get", "Transaction not found"),
        ("/tx/does-not-exist/decrypt", "post", "Transaction not found"),
    ],
)
async def test_error_body_has_error_key(client: AsyncClient, path, method, expected):
    """Error responses carry the message under both detail and error."""
    response = await getattr(client, method)(path)

    assert response.json() == {"detail": expected, "error": expected}


@pytest.mark.asyncio
async def test_decrypt_failure_error_key(client: AsyncClient, other_master_key: bytes):
    """The web client's error key holds the generic decryption message."""
    created = await _encrypt(client)
    app.state.master_key = other_master_key

    response = await client.post(f"/tx/{created['id']}/decrypt")

    assert response.json()["error"] == "Decryption failed: Integrity check failed"


@pytest.mark.asyncio
async def test_health_degraded_error_key(client: AsyncClient):
    """Structured details keep a plain-text error phrase."""
    app.state.master_key = None

    response = await client.get("/health")

    assert response.json()["error"] == "Service Unavailable"
    assert response.json()["detail"]["encryption"] == "unavailable"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "content",
    [
        b'{"partyId": 123, "payload": {"amount": 1}}',
        b'{"partyId": ["party"], "payload": {"amount": 1}}',
        b'[1, 2, 3]',
        b'"just a string"',
        b'{"partyId": "party_123", "payload": NaN}',
        b'{"partyId": "party_123", "payload": {"amount": Infinity}}',
        b'{not json',
    ],
)
async def test_encrypt_invalid_body(client: AsyncClient, record_store, content: bytes):
    """Wrongly typed fields, non-object bodies and non-JSON values are a 400."""
    response = await client.post(
        "/tx/encrypt",
        content=content,
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Missing partyId or payload"
    assert len(record_store) == 0


@pytest.mark.asyncio
async def test_cipher_runs_in_threadpool(client: AsyncClient, cipher):
    """Encryption and decryption are dispatched off the event loop."""
    from secure_tx.routes import transactions

    with patch.object(
        transactions, "run_in_threadpool", wraps=transactions.run_in_threadpool
    ) as threadpool:
        created = await _encrypt(client)
        response = await client.post(f"/tx/{created['id']}/decrypt")

    assert response.status_code == 200
    called = [call.args[0] for call in threadpool.call_args_list]
    assert called == [cipher.encrypt, cipher.decrypt]
