"""
Composition root for CloudCore.

The application builds exactly one ``CloudCore`` and passes it to whatever
needs storage access; there is no module-level instance.
"""

import asyncio
import logging
import sys
import webbrowser
from pathlib import Path
from typing import Any, Callable, Optional

import httpx

from .auth.base import Clock
from .auth.google import GoogleTokenManager
from .auth.notifications import LoggingNotifier, Notifier
from .cache.folder_cache import FolderPathCache
from .config.environment import EnvironmentLoader
from .config.settings import CoreConfig, LogLevel
from .config.validation import ConfigValidator
from .crypt.base import CryptoBackend
from .crypt.codec import CredentialCodec
from .crypt.fernet import FernetCryptoBackend
from .exceptions import ConfigurationError, create_error_context
from .models.credential import StorageProvider
from .providers.base import Provider
from .providers.google import GoogleDriveProvider
from .providers.registry import ProviderRegistry
from .state.base import SecureRecordStore
from .state.credentials import CredentialRepository
from .state.file import EncryptedFileRecordStore
from .transfer.download import Sleep
from .transfer.progress import ProgressSink, QueueProgressSink

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: LogLevel = LogLevel.INFO, log_file: Optional[str] = None) -> None:
    """Log to stdout and, when it can be opened, to ``log_file``."""
    log_handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            log_handlers.append(logging.FileHandler(str(log_path)))
        except OSError:
            # File logging not available, use stdout only
            pass

    logging.basicConfig(
        level=level.value,
        format=LOG_FORMAT,
        handlers=log_handlers,
        force=True,
    )


class CloudCore:
    """
    Owns the shared HTTP client, the progress channel and the provider
    registry. One provider per backend kind is created on first use.
    """

    def __init__(
        self,
        config: CoreConfig,
        store: SecureRecordStore,
        crypto: CryptoBackend,
        notifier: Optional[Notifier] = None,
        http: Optional[httpx.AsyncClient] = None,
        sink: Optional[ProgressSink] = None,
        open_url: Callable[[str], Any] = webbrowser.open,
        sleep: Sleep = asyncio.sleep,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize the core.

        Args:
            config: Validated before anything is built
            store: Secure record store holding the credentials
            crypto: Crypto collaborator used by the credential codec
            notifier: Receives authentication errors
            http: Shared client; one is created (and closed) when omitted
            sink: Progress channel; a bounded queue by default
            open_url: Opens authorize URLs in the system browser
            sleep: Used between operation polls
            clock: Current UTC unix time, for token staleness

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        errors = ConfigValidator.validate_config(config)
        if errors:
            raise ConfigurationError(
                f"Invalid configuration: {'; '.join(errors)}",
                context=create_error_context(errors=errors),
            )

        self.config = config
        self.store = store
        self.codec = CredentialCodec(crypto)
        self.notifier = notifier or LoggingNotifier()
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(timeout=config.transfer.request_timeout)
        self.sink = sink if sink is not None else QueueProgressSink(config.transfer.progress_queue_size)
        self.open_url = open_url
        self.sleep = sleep
        self.clock = clock

        self.registry = ProviderRegistry()
        self.registry.register(StorageProvider.GOOGLE, self._create_google)

    @classmethod
    def from_environment(cls, dotenv_path: Optional[str] = None, **kwargs: Any) -> "CloudCore":
        """Build from environment variables with the encrypted file store."""
        config = EnvironmentLoader.load_config(dotenv_path)
        setup_logging(config.log_level, config.log_file)

        crypto = FernetCryptoBackend(master_key_env=config.store.master_key_env)
        store = EncryptedFileRecordStore(config.store.path, crypto)
        return cls(config, store, crypto, **kwargs)

    async def provider(self, kind: StorageProvider) -> Optional[Provider]:
        """The provider for ``kind``, or None if that backend is not implemented."""
        return await self.registry.get(kind)

    async def google(self) -> GoogleDriveProvider:
        provider = await self.registry.get(StorageProvider.GOOGLE)
        if not isinstance(provider, GoogleDriveProvider):
            raise ConfigurationError(
                "No Google Drive provider is registered",
                context=create_error_context(registered=type(provider).__name__),
            )
        return provider

    async def aclose(self) -> None:
        """Stop pending authentications and release the HTTP client."""
        for provider in self.registry.instances():
            await provider.authenticator.stop()
        if self._owns_http:
            await self.http.aclose()
        logger.info("CloudCore closed")

    async def __aenter__(self) -> "CloudCore":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def _create_google(self) -> GoogleDriveProvider:
        credentials = await CredentialRepository.load(self.store, StorageProvider.GOOGLE)
        manager = GoogleTokenManager(
            self.config.google,
            credentials,
            self.codec,
            self.http,
            notifier=self.notifier,
            open_url=self.open_url,
            clock=self.clock,
        )
        return GoogleDriveProvider(
            manager,
            self.http,
            config=self.config.transfer,
            folder_cache=FolderPathCache(self.config.cache.max_entries),
            sink=self.sink,
            sleep=self.sleep,
        )
