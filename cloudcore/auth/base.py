"""
Authenticator capability: one OAuth flow plus token freshness.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..crypt.codec import CredentialCodec
from ..models.credential import Credential, StorageProvider
from ..state.credentials import CredentialRepository

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class Authenticator(ABC):
    """
    Owns the OAuth flow and the credential collection of one backend.

    Tokens are refreshed lazily: ``refresh_if_stale`` is called right before
    every authenticated request, never on a timer.
    """

    provider: StorageProvider = StorageProvider.UNRECOGNIZED

    def __init__(
        self,
        credentials: CredentialRepository,
        codec: CredentialCodec,
        clock: Optional[Clock] = None,
    ):
        self.credentials = credentials
        self.codec = codec
        self._clock = clock or time.time

    def now(self) -> int:
        """Current UTC unix time in seconds."""
        return int(self._clock())

    @property
    @abstractmethod
    def is_authenticating(self) -> bool:
        """True while an authorization round trip is pending."""
        pass

    @abstractmethod
    async def start(self) -> bool:
        """Begin an authorization round trip; False if it could not start."""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Tear down the pending round trip, if any."""
        pass

    @abstractmethod
    async def receive(self, url: str) -> Optional[Credential]:
        """Handle the redirect URL of a round trip."""
        pass

    @abstractmethod
    async def refresh(self, credential: Credential) -> Optional[Credential]:
        """Exchange the refresh token for a new access token."""
        pass

    async def refresh_if_stale(
        self, credential: Credential, now: Optional[int] = None
    ) -> Optional[Credential]:
        """
        Refresh only if the credential has expired.

        Args:
            credential: Credential about to be used
            now: Override of the current UTC unix time

        Returns:
            The same credential if still valid, the refreshed one, or None
            if the refresh failed
        """
        if now is None:
            now = self.now()
        if not credential.is_stale(now):
            return credential

        logger.info(f"Access token for {credential.owner} expired, refreshing")
        return await self.refresh(credential)

    def unpack_access_token(self, credential: Credential) -> Optional[str]:
        """Plaintext access token, for the duration of one request."""
        return self.codec.unwrap(credential.access_token, credential.salt)
