"""
Environment variable handling for CloudCore configuration.
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .settings import (
    CacheConfig, CoreConfig, LogLevel, OAuthClientConfig, StoreConfig, TransferConfig
)
from .constants import (
    DEFAULT_FOLDER_CACHE_SIZE,
    DEFAULT_PROGRESS_QUEUE_SIZE,
    DEFAULT_REQUEST_TIMEOUT,
    FILE_UPLOAD_CHUNK_SIZE,
    GOOGLE_DEFAULT_SCOPES,
    POLL_BACKOFF_FACTOR,
    POLL_BASE_DELAY_MS,
    POLL_MAX_DELAY_MS,
)


class EnvironmentLoader:
    """Loads configuration from environment variables."""

    @staticmethod
    def load_config(dotenv_path: Optional[str] = None) -> CoreConfig:
        """Load configuration from environment variables."""
        # .env wins over the shell so a checked-out profile is reproducible
        load_dotenv(dotenv_path, override=True)

        scopes = EnvironmentLoader._parse_list(os.getenv('CLOUDCORE_GOOGLE_SCOPES', ''), delimiter=' ')
        google = OAuthClientConfig(
            client_id=os.getenv('CLOUDCORE_GOOGLE_CLIENT_ID', ''),
            client_secret=os.getenv('CLOUDCORE_GOOGLE_CLIENT_SECRET', ''),
            scopes=scopes or list(GOOGLE_DEFAULT_SCOPES),
        )

        max_failures_raw = os.getenv('CLOUDCORE_POLL_MAX_FAILURES', '').strip()
        transfer = TransferConfig(
            chunk_size=EnvironmentLoader._int_env('CLOUDCORE_CHUNK_SIZE', FILE_UPLOAD_CHUNK_SIZE),
            poll_base_delay_ms=EnvironmentLoader._int_env('CLOUDCORE_POLL_BASE_DELAY_MS', POLL_BASE_DELAY_MS),
            poll_backoff_factor=EnvironmentLoader._float_env('CLOUDCORE_POLL_BACKOFF_FACTOR', POLL_BACKOFF_FACTOR),
            poll_max_delay_ms=EnvironmentLoader._int_env('CLOUDCORE_POLL_MAX_DELAY_MS', POLL_MAX_DELAY_MS),
            max_poll_failures=int(max_failures_raw) if max_failures_raw.isdigit() else None,
            request_timeout=EnvironmentLoader._float_env('CLOUDCORE_REQUEST_TIMEOUT', DEFAULT_REQUEST_TIMEOUT),
            progress_queue_size=EnvironmentLoader._int_env(
                'CLOUDCORE_PROGRESS_QUEUE_SIZE', DEFAULT_PROGRESS_QUEUE_SIZE
            ),
        )

        cache = CacheConfig(
            max_entries=EnvironmentLoader._int_env('CLOUDCORE_FOLDER_CACHE_SIZE', DEFAULT_FOLDER_CACHE_SIZE),
        )

        store = StoreConfig(
            path=Path(os.getenv('CLOUDCORE_STATE_PATH', 'data/state.enc')),
        )

        log_level = LogLevel.INFO
        try:
            log_level = LogLevel(os.getenv('LOG_LEVEL', 'INFO').upper())
        except ValueError:
            pass  # keep default

        return CoreConfig(
            google=google,
            transfer=transfer,
            cache=cache,
            store=store,
            log_level=log_level,
            log_file=os.getenv('LOG_FILE') or None,
        )

    @staticmethod
    def _parse_list(value: str, delimiter: str = ',') -> List[str]:
        """Parse a delimited string into a list."""
        if not value:
            return []
        return [item.strip() for item in value.split(delimiter) if item.strip()]

    @staticmethod
    def _int_env(key: str, default: int) -> int:
        try:
            return int(os.getenv(key, str(default)))
        except ValueError:
            return default

    @staticmethod
    def _float_env(key: str, default: float) -> float:
        try:
            return float(os.getenv(key, str(default)))
        except ValueError:
            return default
