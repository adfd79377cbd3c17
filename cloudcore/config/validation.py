"""
Configuration validation for CloudCore.
"""

from typing import List

from .settings import CoreConfig
from .constants import UPLOAD_CHUNK_GRANULARITY


class ConfigValidator:
    """Validates configuration settings."""

    @staticmethod
    def validate_config(config: CoreConfig) -> List[str]:
        """Validate the entire configuration."""
        errors = []
        errors.extend(ConfigValidator._validate_oauth(config))
        errors.extend(ConfigValidator._validate_transfer(config))
        errors.extend(ConfigValidator._validate_cache(config))
        return errors

    @staticmethod
    def _validate_oauth(config: CoreConfig) -> List[str]:
        errors = []

        if not config.google.client_id:
            errors.append("Google OAuth client id is not set (CLOUDCORE_GOOGLE_CLIENT_ID)")
        if not config.google.client_secret:
            errors.append("Google OAuth client secret is not set (CLOUDCORE_GOOGLE_CLIENT_SECRET)")
        if not config.google.scopes:
            errors.append("At least one OAuth scope is required")

        return errors

    @staticmethod
    def _validate_transfer(config: CoreConfig) -> List[str]:
        errors = []
        transfer = config.transfer

        # Resumable sessions only accept non-final chunks in 256 KiB multiples
        if transfer.chunk_size <= 0 or transfer.chunk_size % UPLOAD_CHUNK_GRANULARITY != 0:
            errors.append(
                f"chunk_size must be a positive multiple of {UPLOAD_CHUNK_GRANULARITY} bytes"
            )

        if transfer.poll_base_delay_ms <= 0:
            errors.append("poll_base_delay_ms must be positive")
        if transfer.poll_backoff_factor < 1:
            errors.append("poll_backoff_factor must be at least 1")
        if transfer.poll_max_delay_ms < transfer.poll_base_delay_ms:
            errors.append("poll_max_delay_ms must not be lower than poll_base_delay_ms")
        if transfer.max_poll_failures is not None and transfer.max_poll_failures < 1:
            errors.append("max_poll_failures must be at least 1 when set")
        if transfer.request_timeout <= 0:
            errors.append("request_timeout must be positive")
        if transfer.progress_queue_size < 1:
            errors.append("progress_queue_size must be at least 1")

        return errors

    @staticmethod
    def _validate_cache(config: CoreConfig) -> List[str]:
        errors = []
        if config.cache.max_entries < 1:
            errors.append("Folder cache size must be at least 1")
        return errors
