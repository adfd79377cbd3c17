"""
Folder path cache: full path to remote folder id and back.

Entries are trusted until invalidated. Renames or moves made outside this
process are not observed; callers that learn of one call ``invalidate``.
"""

import logging
from typing import Awaitable, Callable, List, Optional, Sequence

from ..config.constants import DEFAULT_FOLDER_CACHE_SIZE
from .dual_cache import DualSidedCache

logger = logging.getLogger(__name__)

# (segment name, parent folder id) -> child folder id, or None if absent
FolderLookup = Callable[[str, str], Awaitable[Optional[str]]]


class FolderPathCache:
    """
    Memo of resolved folder paths, namespaced by the folder they start from.

    Keys look like ``"<start_id>/a/b"``; the same relative path under two
    different start folders maps to two different ids.
    """

    def __init__(self, max_entries: int = DEFAULT_FOLDER_CACHE_SIZE):
        self._cache: DualSidedCache[str, str] = DualSidedCache(max_entries)

    def __len__(self) -> int:
        return len(self._cache)

    @staticmethod
    def normalize(path: str) -> str:
        """Strip separators and empty segments: ``"/a//b/"`` -> ``"a/b"``."""
        return "/".join(s for s in path.replace("\\", "/").split("/") if s)

    @classmethod
    def key(cls, path: str, start_id: str = "root") -> str:
        return f"{start_id}/{cls.normalize(path)}"

    def get_id(self, path: str, start_id: str = "root") -> Optional[str]:
        return self._cache.get(self.key(path, start_id))

    def get_path(self, folder_id: str) -> Optional[str]:
        """Namespaced key under which ``folder_id`` was cached."""
        return self._cache.get_key(folder_id)

    def remember(self, path: str, folder_id: str, start_id: str = "root") -> None:
        self._cache.set(self.key(path, start_id), folder_id)

    def remember_child(self, parent_id: str, name: str, folder_id: str) -> None:
        """Cache a folder created under ``parent_id``, a cached folder or a start folder."""
        parent_key = self.get_path(parent_id)
        if parent_key is None:
            parent_key = f"{parent_id}/"
        self._cache.set(f"{parent_key.rstrip('/')}/{self.normalize(name)}", folder_id)

    def invalidate(self, path: str, start_id: Optional[str] = None) -> int:
        """
        Drop ``path`` and every cached descendant.

        Args:
            path: Relative folder path
            start_id: Only drop entries under this start folder; all if None

        Returns:
            Number of entries removed
        """
        target = self.normalize(path)
        removed = 0
        for key in self._cache:
            start, _, relative = key.partition("/")
            if start_id is not None and start != start_id:
                continue
            if relative == target or relative.startswith(target + "/") or not target:
                self._cache.remove(key)
                removed += 1

        if removed:
            logger.debug(f"Invalidated {removed} cached folder(s) under '{target}'")
        return removed

    def clear(self) -> None:
        self._cache.clear()

    async def resolve(
        self,
        segments: Sequence[str],
        start_id: str,
        lookup: FolderLookup,
    ) -> List[str]:
        """
        Walk ``segments`` from ``start_id``, one folder at a time.

        Cached prefixes cost no remote call; each miss is looked up and cached
        before descending. Resolution stops at the first segment with no
        remote match.

        Returns:
            Ids of the resolved folders, in order. Shorter than ``segments``
            when a segment is missing; the caller creates the rest.
        """
        chain: List[str] = []
        parent_id = start_id
        walked: List[str] = []

        for segment in segments:
            walked.append(segment)
            path = "/".join(walked)

            folder_id = self.get_id(path, start_id)
            if folder_id is None:
                folder_id = await lookup(segment, parent_id)
                if folder_id is None:
                    logger.debug(f"Folder '{path}' not found under {start_id}")
                    break
                self.remember(path, folder_id, start_id)

            chain.append(folder_id)
            parent_id = folder_id

        return chain
