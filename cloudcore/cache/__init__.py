"""
Folder path caching.
"""

from .dual_cache import DualSidedCache
from .folder_cache import FolderLookup, FolderPathCache

__all__ = ["DualSidedCache", "FolderLookup", "FolderPathCache"]
