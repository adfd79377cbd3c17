"""
Process-local record store.
"""

import copy
from typing import Any, Dict, Optional

from .base import RecordKey, SecureRecordStore


class InMemoryRecordStore(SecureRecordStore):
    """Keeps records in a dict; values are deep-copied in and out."""

    def __init__(self, initial: Optional[Dict[RecordKey, Any]] = None):
        self._records: Dict[RecordKey, Any] = {}
        for key, value in (initial or {}).items():
            self._records[RecordKey(key)] = copy.deepcopy(value)

    async def get(self, key: RecordKey) -> Optional[Any]:
        value = self._records.get(RecordKey(key))
        return copy.deepcopy(value)

    async def insert(self, key: RecordKey, value: Any) -> bool:
        self._records[RecordKey(key)] = copy.deepcopy(value)
        return True

    async def remove(self, key: RecordKey) -> bool:
        return self._records.pop(RecordKey(key), None) is not None
