"""
In-memory storage for SecureRecords.

Records live only for the lifetime of the process. Nothing here touches
key material: the store holds records exactly as the cipher produced them.
"""
import threading
from typing import Dict, Optional

from fastapi import Request

from secure_tx.schemas.secure_record import SecureRecord
from secure_tx.utils.logger import get_logger

logger = get_logger("record_store")


class InMemoryRecordStore:
    """Thread-safe dict of record id -> SecureRecord."""

    def __init__(self):
        self._records: Dict[str, SecureRecord] = {}
        self._lock = threading.Lock()

    def save(self, record: SecureRecord) -> None:
        """Store a record under its id, replacing any existing entry."""
        with self._lock:
            self._records[record.id] = record
        logger.debug("Stored record", record_id=record.id)

    def get(self, record_id: str) -> Optional[SecureRecord]:
        """Return the record with this id, or None."""
        with self._lock:
            return self._records.get(record_id)

    def delete(self, record_id: str) -> bool:
        """Remove a record. Returns False if it was not present."""
        with self._lock:
            removed = self._records.pop(record_id, None)
        return removed is not None

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        with self._lock:
            return record_id in self._records


def get_record_store(request: Request) -> InMemoryRecordStore:
    """Dependency to get the record store from app state."""
    return request.app.state.record_store
