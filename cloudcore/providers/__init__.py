"""
Storage providers and their registry.
"""

from .base import AccessGrant, FolderCapable, Provider, Transferable
from .google import GoogleDriveProvider
from .handoff import CommandLauncher, NativeAppHandoff, NativeAppLauncher
from .registry import ProviderFactory, ProviderRegistry

__all__ = [
    "AccessGrant",
    "FolderCapable",
    "Provider",
    "Transferable",
    "GoogleDriveProvider",
    "CommandLauncher",
    "NativeAppHandoff",
    "NativeAppLauncher",
    "ProviderFactory",
    "ProviderRegistry",
]
