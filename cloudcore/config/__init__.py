"""
Configuration management for CloudCore.
"""

from .settings import (
    CacheConfig,
    CoreConfig,
    LogLevel,
    OAuthClientConfig,
    StoreConfig,
    TransferConfig,
)
from .environment import EnvironmentLoader
from .validation import ConfigValidator

__all__ = [
    "CacheConfig",
    "CoreConfig",
    "LogLevel",
    "OAuthClientConfig",
    "StoreConfig",
    "TransferConfig",
    "EnvironmentLoader",
    "ConfigValidator",
]
