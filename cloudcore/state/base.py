"""
Secure record store interface.

Records are JSON-compatible values addressed by a small closed set of keys.
Encryption of the persisted form is the store's concern.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional


class RecordKey(str, Enum):
    """Keys accepted by the record store."""
    PROVIDERS = "providers"
    SETTINGS = "settings"
    PASSWORD = "password"


class SecureRecordStore(ABC):
    """Abstract keyed encrypted persistence."""

    @abstractmethod
    async def get(self, key: RecordKey) -> Optional[Any]:
        """
        Retrieve a record.

        Args:
            key: Record key

        Returns:
            Record value or None if absent or unreadable
        """
        pass

    @abstractmethod
    async def insert(self, key: RecordKey, value: Any) -> bool:
        """
        Store a record, replacing any previous value.

        Args:
            key: Record key
            value: JSON-compatible value

        Returns:
            True if persisted
        """
        pass

    @abstractmethod
    async def remove(self, key: RecordKey) -> bool:
        """
        Delete a record.

        Args:
            key: Record key

        Returns:
            True if a record was removed
        """
        pass
