"""
Provider capabilities and the shared authenticated-request plumbing.
"""

import functools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from ..auth.base import Authenticator
from ..exceptions import CredentialError, create_error_context
from ..models.credential import Credential, StorageProvider
from ..models.drive import DriveFile, ExtendedDriveFile, FileListing
from ..models.transfer import TransferSession
from ..transfer.progress import NullProgressSink, ProgressSink
from ..transfer.upload import Send

logger = logging.getLogger(__name__)


@dataclass
class AccessGrant:
    """A fresh credential and its plaintext access token, for one operation."""
    credential: Credential
    access_token: str = field(repr=False)

    @property
    def owner(self) -> str:
        return self.credential.owner


class Transferable(ABC):
    """Browse, download and upload files."""

    @abstractmethod
    async def list_files(
        self, owner: str, folder: str = "root", page_token: Optional[str] = None
    ) -> FileListing:
        pass

    @abstractmethod
    async def get_file(self, owner: str, file: DriveFile) -> Optional[ExtendedDriveFile]:
        pass

    @abstractmethod
    async def download_file(
        self,
        owner: str,
        file: DriveFile,
        session: Optional[TransferSession] = None,
        dest_dir: Optional[Path] = None,
    ) -> Optional[Path]:
        pass

    @abstractmethod
    async def upload_files(
        self,
        owner: str,
        local_file: Path,
        relative_path: Optional[str] = None,
        folder: str = "root",
        session: Optional[TransferSession] = None,
    ) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def update_file(
        self,
        owner: str,
        local_path: Path,
        session: Optional[TransferSession] = None,
        remote_file: Optional[DriveFile] = None,
    ) -> Optional[Dict[str, Any]]:
        pass


class FolderCapable(ABC):
    """Create folders."""

    @abstractmethod
    async def create_folder(self, owner: str, parent: str, name: str) -> Optional[DriveFile]:
        pass


class Provider(ABC):
    """
    One storage backend bound to its authenticator.

    Every authenticated call goes through ``authorized_request``, which is
    the only place the bearer header is set.
    """

    kind: StorageProvider = StorageProvider.UNRECOGNIZED

    def __init__(
        self,
        authenticator: Authenticator,
        http: httpx.AsyncClient,
        sink: Optional[ProgressSink] = None,
    ):
        self.authenticator = authenticator
        self.http = http
        self.sink = sink if sink is not None else NullProgressSink()

    @property
    def owners(self) -> List[str]:
        return self.authenticator.credentials.owners

    async def get_valid_access(self, owner: str) -> Optional[AccessGrant]:
        """
        Resolve a non-stale credential and its access token.

        Returns:
            The grant, or None when the operation cannot proceed
        """
        credential = self.authenticator.credentials.find(owner)
        if credential is None:
            logger.warning(f"No {self.kind.value} account connected for {owner}")
            return None

        credential = await self.authenticator.refresh_if_stale(credential)
        if credential is None:
            return None

        access_token = self.authenticator.unpack_access_token(credential)
        if access_token is None:
            logger.error(f"Access token for {owner} could not be decrypted")
            return None

        return AccessGrant(credential=credential, access_token=access_token)

    async def authorized_request(
        self,
        access: AccessGrant,
        method: str,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        stream: bool = False,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Send a request carrying the bearer token of ``access``.

        The token is checked for staleness right before the send and
        ``access`` is updated in place when it had to be refreshed, so long
        transfers keep working past the token lifetime. With ``stream=True``
        the body is not read and the caller must close the response.

        Raises:
            CredentialError: If the token expired and could not be refreshed
        """
        await self._renew(access)
        merged = dict(headers or {})
        merged["Authorization"] = f"Bearer {access.access_token}"
        request = self.http.build_request(method, url, headers=merged, **kwargs)
        return await self.http.send(request, stream=stream)

    async def _renew(self, access: AccessGrant) -> None:
        # Another operation may already have refreshed this account
        current = self.authenticator.credentials.find(access.owner) or access.credential
        credential = await self.authenticator.refresh_if_stale(current)
        if credential is None:
            raise CredentialError(
                f"Access token for {access.owner} expired and could not be refreshed",
                context=create_error_context(owner=access.owner, provider=self.kind.value),
            )
        if credential is access.credential:
            return

        access_token = self.authenticator.unpack_access_token(credential)
        if access_token is None:
            raise CredentialError(
                f"Access token for {access.owner} could not be decrypted",
                context=create_error_context(owner=access.owner, provider=self.kind.value),
            )
        access.credential = credential
        access.access_token = access_token

    def sender(self, access: AccessGrant) -> Send:
        """``authorized_request`` bound to one grant, for the transfer engine."""
        return functools.partial(self.authorized_request, access)

    def new_session(self) -> TransferSession:
        return TransferSession(sink=self.sink)
