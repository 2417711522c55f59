"""
Pytest configuration and fixtures for secure transaction tests.
"""
import os
from typing import AsyncGenerator

import pytest
from httpx import AsyncClient, ASGITransport

# Test-only master key (32 zero bytes). Set before importing Settings to avoid validation error
TEST_MASTER_KEY_HEX = "00" * 32
os.environ.setdefault("MASTER_KEY_HEX", TEST_MASTER_KEY_HEX)

from secure_tx.main import app
from secure_tx.services.envelope_cipher import EnvelopeCipher
from secure_tx.services.record_store import InMemoryRecordStore


@pytest.fixture
def master_key() -> bytes:
    """Test master key: 32 zero bytes."""
    return bytes(32)


@pytest.fixture
def other_master_key() -> bytes:
    """A different valid 32-byte master key."""
    return bytes(range(32))


@pytest.fixture
def cipher() -> EnvelopeCipher:
    """Envelope cipher in baseline mode (no AAD binding)."""
    return EnvelopeCipher()


@pytest.fixture
def bound_cipher() -> EnvelopeCipher:
    """Envelope cipher that binds id and partyId as AAD."""
    return EnvelopeCipher(bind_record_aad=True)


@pytest.fixture
def record_store() -> InMemoryRecordStore:
    """Empty in-memory record store."""
    return InMemoryRecordStore()


@pytest.fixture
async def client(
    cipher: EnvelopeCipher,
    master_key: bytes,
    record_store: InMemoryRecordStore,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an async test client for the FastAPI application.

    ASGITransport does not run the lifespan, so the state it would set up
    is installed directly on app.state.
    """
    app.state.envelope_cipher = cipher
    app.state.master_key = master_key
    app.state.record_store = record_store

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.state.envelope_cipher = None
    app.state.master_key = None
