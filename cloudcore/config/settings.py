"""
Configuration dataclasses for CloudCore.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .constants import (
    DEFAULT_FOLDER_CACHE_SIZE,
    DEFAULT_PROGRESS_QUEUE_SIZE,
    DEFAULT_REQUEST_TIMEOUT,
    FILE_UPLOAD_CHUNK_SIZE,
    GOOGLE_AUTH_URL,
    GOOGLE_DEFAULT_SCOPES,
    GOOGLE_TOKEN_URL,
    LOOPBACK_HOST,
    POLL_BACKOFF_FACTOR,
    POLL_BASE_DELAY_MS,
    POLL_MAX_DELAY_MS,
)


class LogLevel(Enum):
    """Logging levels accepted in LOG_LEVEL."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class OAuthClientConfig:
    """OAuth client registration for one identity provider."""
    client_id: str = ""
    client_secret: str = ""
    scopes: List[str] = field(default_factory=lambda: list(GOOGLE_DEFAULT_SCOPES))
    authorize_url: str = GOOGLE_AUTH_URL
    token_url: str = GOOGLE_TOKEN_URL
    loopback_host: str = LOOPBACK_HOST

    def is_configured(self) -> bool:
        """Check if the client credentials are present."""
        return bool(self.client_id and self.client_secret)


@dataclass
class TransferConfig:
    """Chunking, polling and HTTP limits for transfers."""
    chunk_size: int = FILE_UPLOAD_CHUNK_SIZE
    poll_base_delay_ms: int = POLL_BASE_DELAY_MS
    poll_backoff_factor: float = POLL_BACKOFF_FACTOR
    poll_max_delay_ms: int = POLL_MAX_DELAY_MS
    # None keeps polling through fetch errors indefinitely
    max_poll_failures: Optional[int] = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    progress_queue_size: int = DEFAULT_PROGRESS_QUEUE_SIZE


@dataclass
class CacheConfig:
    """Folder path cache limits."""
    max_entries: int = DEFAULT_FOLDER_CACHE_SIZE


@dataclass
class StoreConfig:
    """Location and key source of the encrypted record store."""
    path: Path = field(default_factory=lambda: Path("data/state.enc"))
    master_key_env: str = "CLOUDCORE_MASTER_KEY"


@dataclass
class CoreConfig:
    """Top-level configuration."""
    google: OAuthClientConfig = field(default_factory=OAuthClientConfig)
    transfer: TransferConfig = field(default_factory=TransferConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    log_level: LogLevel = LogLevel.INFO
    log_file: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view with secrets masked."""
        return {
            "google": {
                "client_id": self.google.client_id,
                "client_secret": "***" if self.google.client_secret else "",
                "scopes": self.google.scopes,
            },
            "transfer": {
                "chunk_size": self.transfer.chunk_size,
                "poll_base_delay_ms": self.transfer.poll_base_delay_ms,
                "poll_backoff_factor": self.transfer.poll_backoff_factor,
                "poll_max_delay_ms": self.transfer.poll_max_delay_ms,
                "max_poll_failures": self.transfer.max_poll_failures,
                "request_timeout": self.transfer.request_timeout,
                "progress_queue_size": self.transfer.progress_queue_size,
            },
            "cache": {"max_entries": self.cache.max_entries},
            "store": {
                "path": str(self.store.path),
                "master_key_env": self.store.master_key_env,
            },
            "log_level": self.log_level.value,
            "log_file": self.log_file,
        }
