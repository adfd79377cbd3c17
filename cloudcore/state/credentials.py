"""
Credential collection for one provider kind, backed by the record store.
"""

import asyncio
import logging
from typing import List, Optional

from ..models.credential import Credential, StorageProvider
from .base import RecordKey, SecureRecordStore

logger = logging.getLogger(__name__)


class CredentialRepository:
    """
    In-memory credentials of one provider kind.

    The ``providers`` record holds credentials of every kind; persisting
    rewrites it with this repository's entries and leaves the other kinds
    untouched.
    """

    def __init__(
        self,
        store: SecureRecordStore,
        provider: StorageProvider,
        credentials: Optional[List[Credential]] = None,
    ):
        self.store = store
        self.provider = provider
        self._credentials: List[Credential] = list(credentials or [])
        self._lock = asyncio.Lock()

    @classmethod
    async def load(cls, store: SecureRecordStore, provider: StorageProvider) -> "CredentialRepository":
        """Build a repository from the stored ``providers`` record."""
        records = await store.get(RecordKey.PROVIDERS) or []
        credentials = []
        for record in records:
            try:
                credential = Credential.from_dict(record)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed credential record: {e}")
                continue
            if credential.provider == provider:
                credentials.append(credential)

        logger.info(f"Loaded {len(credentials)} {provider.value} credential(s)")
        return cls(store, provider, credentials)

    @property
    def credentials(self) -> List[Credential]:
        return list(self._credentials)

    @property
    def owners(self) -> List[str]:
        return [c.owner for c in self._credentials]

    def find(self, owner: str) -> Optional[Credential]:
        for credential in self._credentials:
            if credential.owner == owner:
                return credential
        return None

    async def add(self, credential: Credential) -> bool:
        """Add a credential; an existing entry for the same owner is replaced."""
        return await self.replace(credential)

    async def replace(self, credential: Credential) -> bool:
        """Replace the entry matching ``credential.owner`` and persist."""
        async with self._lock:
            for index, existing in enumerate(self._credentials):
                if existing.owner == credential.owner:
                    self._credentials[index] = credential
                    break
            else:
                self._credentials.append(credential)
            return await self._persist()

    async def drop(self, owner: str) -> bool:
        """Remove an account (disconnect) and persist."""
        async with self._lock:
            before = len(self._credentials)
            self._credentials = [c for c in self._credentials if c.owner != owner]
            if len(self._credentials) == before:
                return False
            logger.info(f"Dropped {self.provider.value} credential for {owner}")
            return await self._persist()

    async def persist(self) -> bool:
        async with self._lock:
            return await self._persist()

    async def _persist(self) -> bool:
        records = await self.store.get(RecordKey.PROVIDERS) or []
        others = [r for r in records if r.get("provider") != self.provider.value]
        ok = await self.store.insert(
            RecordKey.PROVIDERS,
            others + [c.to_dict() for c in self._credentials],
        )
        if not ok:
            logger.error(f"Failed to persist {self.provider.value} credentials")
        return ok
