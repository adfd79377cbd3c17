"""
Encrypted single-file record store.
"""

import asyncio
import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..crypt.base import CryptoBackend
from ..exceptions import CryptoError, StoreError, create_error_context
from ..models.crypt import CryptBlob
from .base import RecordKey, SecureRecordStore

logger = logging.getLogger(__name__)


class EncryptedFileRecordStore(SecureRecordStore):
    """
    All records in one encrypted JSON document.

    The document is decrypted once, kept in memory, and rewritten atomically
    on every change. A document that cannot be decrypted is never
    overwritten: reads return None and writes fail until the key is fixed.
    """

    def __init__(self, path: Path, crypto: CryptoBackend):
        """
        Initialize the store.

        Args:
            path: File holding the encrypted document
            crypto: Backend used to seal the document
        """
        self.path = Path(path)
        self.crypto = crypto
        self._document: Optional[Dict[str, Any]] = None
        self._lock = asyncio.Lock()

    async def get(self, key: RecordKey) -> Optional[Any]:
        async with self._lock:
            try:
                document = self._load()
            except StoreError as e:
                logger.error(e.message)
                return None
            return copy.deepcopy(document.get(RecordKey(key).value))

    async def insert(self, key: RecordKey, value: Any) -> bool:
        name = RecordKey(key).value
        async with self._lock:
            try:
                document = self._load()
            except StoreError as e:
                logger.error(e.message)
                return False

            updated = dict(document)
            updated[name] = copy.deepcopy(value)
            if not self._save(updated):
                return False
            self._document = updated
            return True

    async def remove(self, key: RecordKey) -> bool:
        name = RecordKey(key).value
        async with self._lock:
            try:
                document = self._load()
            except StoreError as e:
                logger.error(e.message)
                return False

            if name not in document:
                return False
            updated = {k: v for k, v in document.items() if k != name}
            if not self._save(updated):
                return False
            self._document = updated
            return True

    def _load(self) -> Dict[str, Any]:
        if self._document is not None:
            return self._document

        if not self.path.exists():
            self._document = {}
            return self._document

        try:
            blob = CryptBlob.from_dict(json.loads(self.path.read_text()))
            self._document = json.loads(self.crypto.decrypt_to_string(blob))
        except (OSError, ValueError, KeyError, CryptoError) as e:
            raise StoreError(
                f"Failed to read record store {self.path}: {e}",
                context=create_error_context(path=str(self.path), operation="load"),
                cause=e,
            )
        return self._document

    def _save(self, document: Dict[str, Any]) -> bool:
        try:
            blob = self.crypto.encrypt_string(json.dumps(document))
            self._atomic_write(self.path, blob.to_dict())
            logger.debug(f"Saved record store {self.path}")
            return True
        except (OSError, CryptoError) as e:
            logger.error(f"Failed to write record store {self.path}: {e}")
            return False

    def _atomic_write(self, path: Path, data: dict) -> None:
        """Write atomically using rename."""
        path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = path.with_suffix(".tmp")
        with open(tmp_path, 'w') as f:
            json.dump(data, f)
        tmp_path.chmod(0o600)

        tmp_path.replace(path)
