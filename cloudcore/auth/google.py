"""
Google OAuth 2.0 token lifecycle for installed applications.

The authorization code is delivered to a loopback listener on an ephemeral
port; access tokens are refreshed with the long-lived refresh token, which
is never rotated.
"""

import logging
import webbrowser
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qs, urlencode, urlparse

import httpx
from jose import jwt
from jose.exceptions import JOSEError
from pydantic import ValidationError

from ..config.settings import OAuthClientConfig
from ..crypt.codec import CredentialCodec
from ..models.credential import Credential, StorageProvider
from ..models.drive import TokenResponse
from ..state.credentials import CredentialRepository
from .base import Authenticator, Clock
from .loopback import LoopbackListener
from .notifications import LoggingNotifier, Notifier

logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "Error during Google Drive connection"
ACCESS_DENIED_MESSAGE = "Access to the OAuth flow was denied by the user"
GENERIC_ERROR_MESSAGE = "An error occurred during the OAuth flow"


class GoogleTokenManager(Authenticator):
    """
    Token Lifecycle Manager for Google accounts.

    At most one authorization is pending per instance; ``is_authenticating``
    is true while the loopback port is bound.
    """

    provider = StorageProvider.GOOGLE

    def __init__(
        self,
        config: OAuthClientConfig,
        credentials: CredentialRepository,
        codec: CredentialCodec,
        http: httpx.AsyncClient,
        notifier: Optional[Notifier] = None,
        listener: Optional[LoopbackListener] = None,
        open_url: Callable[[str], Any] = webbrowser.open,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize the manager.

        Args:
            config: OAuth client registration
            credentials: Google credential collection
            codec: Encrypts tokens before they are stored
            http: Shared HTTP client
            notifier: Surfaces OAuth errors to the user
            listener: Loopback redirect receiver
            open_url: Opens the authorize URL in the system browser
            clock: Returns the current UTC unix time
        """
        super().__init__(credentials, codec, clock)
        self.config = config
        self.http = http
        self.notifier = notifier or LoggingNotifier()
        self.listener = listener or LoopbackListener(config.loopback_host)
        self.open_url = open_url
        self.port = 0

    @property
    def is_authenticating(self) -> bool:
        return self.port != 0

    @property
    def redirect_uri(self) -> str:
        return f"http://{self.config.loopback_host}:{self.port}"

    def authorize_url(self) -> str:
        """Authorize URL redirecting to the current loopback port."""
        params = {
            "scope": " ".join(self.config.scopes),
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "client_id": self.config.client_id,
            "access_type": "offline",  # Get refresh token
            "prompt": "consent",
        }
        return f"{self.config.authorize_url}?{urlencode(params)}"

    async def start(self) -> bool:
        if self.is_authenticating:
            logger.warning(f"Google authentication already pending on port {self.port}")
            return False

        try:
            self.port = await self.listener.start(self.receive)
            self.open_url(self.authorize_url())
        except (OSError, RuntimeError, webbrowser.Error) as e:
            logger.error(f"Failed to start Google authentication: {e}")
            await self.stop()
            return False

        logger.info(f"Google authentication started, waiting on port {self.port}")
        return True

    async def stop(self) -> None:
        if not self.is_authenticating:
            return
        self.port = 0
        try:
            await self.listener.stop()
        except (OSError, RuntimeError) as e:
            logger.error(f"Error stopping loopback listener: {e}")

    async def receive(self, url: str) -> Optional[Credential]:
        """
        Handle the OAuth redirect.

        The listener is stopped afterwards whatever the outcome.
        """
        query = parse_qs(urlparse(url).query)
        error = query.get("error", [None])[0]
        code = query.get("code", [None])[0]

        try:
            if error:
                await self._handle_oauth_error(error)
                return None
            if code:
                return await self._handle_oauth_success(code)
            logger.warning("OAuth redirect carried neither code nor error")
            return None
        finally:
            await self.stop()

    async def refresh(self, credential: Credential) -> Optional[Credential]:
        refresh_token = self.codec.unwrap(credential.refresh_token, credential.salt)
        if refresh_token is None:
            logger.error(f"Cannot refresh {credential.owner}: refresh token unreadable")
            return None

        tokens = await self._request_token({
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        })
        if tokens is None:
            logger.error(f"Token refresh failed for {credential.owner}")
            return None

        access_token = self.codec.wrap(tokens.access_token, credential.salt)
        if access_token is None:
            return None

        updated = credential.with_access_token(access_token, self.now() + tokens.expires_in)
        await self.credentials.replace(updated)
        logger.info(f"Refreshed access token for {credential.owner}")
        return updated

    async def _handle_oauth_error(self, error: str) -> None:
        logger.error(f"OAuth flow returned error: {error}")
        if error == "access_denied":
            await self.notifier.notify(NOTIFICATION_TITLE, ACCESS_DENIED_MESSAGE)
        else:
            await self.notifier.notify(NOTIFICATION_TITLE, GENERIC_ERROR_MESSAGE)

    async def _handle_oauth_success(self, code: str) -> Optional[Credential]:
        tokens = await self._request_token({
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
        })
        if tokens is None:
            await self.notifier.notify(NOTIFICATION_TITLE, GENERIC_ERROR_MESSAGE)
            return None

        owner = self._owner_from_id_token(tokens.id_token)
        if owner is None:
            logger.error("Token response did not identify the account")
            await self.notifier.notify(NOTIFICATION_TITLE, GENERIC_ERROR_MESSAGE)
            return None

        existing = self.credentials.find(owner)
        salt = self.codec.new_salt()
        refresh_plain = tokens.refresh_token
        if refresh_plain is None and existing is not None:
            # Google omits the refresh token on re-consent of a known account
            refresh_plain = self.codec.unwrap(existing.refresh_token, existing.salt)
        if refresh_plain is None:
            logger.error(f"No refresh token returned for {owner}")
            await self.notifier.notify(NOTIFICATION_TITLE, GENERIC_ERROR_MESSAGE)
            return None

        access_token = self.codec.wrap(tokens.access_token, salt)
        refresh_token = self.codec.wrap(refresh_plain, salt)
        if access_token is None or refresh_token is None:
            return None

        credential = Credential(
            access_token=access_token,
            refresh_token=refresh_token,
            expiry=self.now() + tokens.expires_in,
            owner=owner,
            provider=self.provider,
            salt=salt,
        )
        await self.credentials.add(credential)
        logger.info(f"Connected Google account {owner}")
        return credential

    async def _request_token(self, data: Dict[str, str]) -> Optional[TokenResponse]:
        try:
            response = await self.http.post(self.config.token_url, data=data)
        except httpx.HTTPError as e:
            logger.error(f"Token endpoint unreachable: {e}")
            return None

        if not response.is_success:
            logger.error(f"Token endpoint returned {response.status_code}")
            return None

        try:
            return TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"Malformed token response: {e}")
            return None

    @staticmethod
    def _owner_from_id_token(id_token: Optional[str]) -> Optional[str]:
        if not id_token:
            return None
        try:
            claims = jwt.get_unverified_claims(id_token)
        except JOSEError as e:
            logger.error(f"Unreadable id_token: {e}")
            return None
        return claims.get("email")
