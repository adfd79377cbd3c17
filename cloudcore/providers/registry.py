"""
Provider registry: one provider instance per backend kind.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from ..models.credential import StorageProvider
from .base import Provider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[], Awaitable[Provider]]


class ProviderRegistry:
    """
    Maps a backend kind to its implementation.

    Factories run on first request; the instance is then reused for the
    life of the registry. Known kinds without a factory resolve to None.
    """

    def __init__(self):
        self._factories: Dict[StorageProvider, ProviderFactory] = {}
        self._instances: Dict[StorageProvider, Provider] = {}
        self._lock = asyncio.Lock()

    @property
    def kinds(self) -> List[StorageProvider]:
        """Every backend kind the application knows of."""
        return [kind for kind in StorageProvider if kind != StorageProvider.UNRECOGNIZED]

    def register(self, kind: StorageProvider, factory: ProviderFactory) -> None:
        self._factories[kind] = factory

    def is_implemented(self, kind: StorageProvider) -> bool:
        return kind in self._factories

    async def get(self, kind: StorageProvider) -> Optional[Provider]:
        if kind in self._instances:
            return self._instances[kind]

        factory = self._factories.get(kind)
        if factory is None:
            logger.debug(f"No provider implementation for {kind.value}")
            return None

        async with self._lock:
            if kind not in self._instances:
                self._instances[kind] = await factory()
                logger.info(f"Initialized {kind.value} provider")
            return self._instances[kind]

    def instances(self) -> List[Provider]:
        return list(self._instances.values())
