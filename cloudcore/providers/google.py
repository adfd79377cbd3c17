"""
Google Drive provider facade.
"""

import asyncio
import logging
import mimetypes
import tempfile
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import httpx
from pydantic import ValidationError

from ..auth.google import GoogleTokenManager
from ..cache.folder_cache import FolderPathCache
from ..config.constants import (
    DRIVE_API_URL,
    DRIVE_UPLOAD_URL,
    EXTENDED_FILE_FIELDS,
    FOLDER_MIME_TYPE,
    LISTING_ORDER_BY,
    LISTING_PAGE_SIZE,
)
from ..config.settings import TransferConfig
from ..exceptions import CredentialError, TransferCancelledError, TransferError, create_error_context
from ..models.credential import StorageProvider
from ..models.drive import DriveFile, ExtendedDriveFile, FileListing, error_listing
from ..models.transfer import TransferSession, TransferState
from ..transfer.download import FileDownloader, OperationPoller, Sleep
from ..transfer.progress import ProgressSink
from ..transfer.upload import ResumableUploader, Send
from .base import FolderCapable, Provider, Transferable

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _quote(value: str) -> str:
    """Escape a literal for the Drive query language."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class GoogleDriveProvider(Provider, Transferable, FolderCapable):
    """
    Operation surface for Google Drive accounts.

    Every operation resolves a fresh access token first; when that fails
    the operation is unavailable and returns None (or the error listing).
    Transfer failures are logged, published on the progress sink and
    reported to the caller the same way.
    """

    kind = StorageProvider.GOOGLE

    def __init__(
        self,
        authenticator: GoogleTokenManager,
        http: httpx.AsyncClient,
        config: Optional[TransferConfig] = None,
        folder_cache: Optional[FolderPathCache] = None,
        sink: Optional[ProgressSink] = None,
        sleep: Sleep = asyncio.sleep,
        api_url: str = DRIVE_API_URL,
        upload_url: str = DRIVE_UPLOAD_URL,
    ):
        super().__init__(authenticator, http, sink)
        self.config = config or TransferConfig()
        self.folder_cache = folder_cache if folder_cache is not None else FolderPathCache()
        self.api_url = api_url
        self.uploader = ResumableUploader(self.config.chunk_size, upload_url)
        self.poller = OperationPoller(
            base_delay_ms=self.config.poll_base_delay_ms,
            backoff_factor=self.config.poll_backoff_factor,
            max_delay_ms=self.config.poll_max_delay_ms,
            max_failures=self.config.max_poll_failures,
            sleep=sleep,
            api_url=api_url,
        )
        self.downloader = FileDownloader(self.poller, self.config.chunk_size)

    async def list_files(
        self, owner: str, folder: str = "root", page_token: Optional[str] = None
    ) -> FileListing:
        """
        One page of ``folder``'s children, folders first.

        Returns:
            The listing, or the error listing if it is unavailable
        """
        access = await self.get_valid_access(owner)
        if access is None:
            return error_listing()

        params = {
            "q": f"trashed = false and '{_quote(folder)}' in parents",
            "pageSize": str(LISTING_PAGE_SIZE),
            "orderBy": LISTING_ORDER_BY,
            "corpora": "user",
            "includeItemsFromAllDrives": "true",
            "supportsAllDrives": "true",
            "fields": "nextPageToken, incompleteSearch, files(id, name, mimeType)",
        }
        if page_token:
            params["pageToken"] = page_token

        try:
            response = await self.authorized_request(access, "GET", f"{self.api_url}/files", params=params)
        except (httpx.HTTPError, CredentialError) as e:
            logger.error(f"Error fetching Google Drive files: {e}")
            return error_listing()

        if not response.is_success:
            logger.error(f"Error fetching Google Drive files: {response.status_code}")
            return error_listing()

        try:
            return FileListing.model_validate(response.json())
        except (ValidationError, ValueError) as e:
            logger.error(f"Malformed Google Drive listing: {e}")
            return error_listing()

    async def get_file(self, owner: str, file: DriveFile) -> Optional[ExtendedDriveFile]:
        """Full metadata of ``file``."""
        access = await self.get_valid_access(owner)
        if access is None:
            return None

        try:
            response = await self.authorized_request(
                access,
                "GET",
                f"{self.api_url}/files/{file.id}",
                params={"fields": EXTENDED_FILE_FIELDS, "supportsAllDrives": "true"},
            )
            response.raise_for_status()
            return ExtendedDriveFile.model_validate(response.json())
        except (httpx.HTTPError, CredentialError, ValidationError, ValueError) as e:
            logger.error(f"Error fetching Google Drive file {file.id}: {e}")
            return None

    async def download_file(
        self,
        owner: str,
        file: DriveFile,
        session: Optional[TransferSession] = None,
        dest_dir: Optional[Path] = None,
    ) -> Optional[Path]:
        """
        Download ``file``, exporting remote-only documents.

        Args:
            owner: Account to use
            file: Remote file
            session: Receives progress; a new one is created if omitted
            dest_dir: Target directory, the system temp dir by default

        Returns:
            The local path, or None if the download failed
        """
        access = await self.get_valid_access(owner)
        if access is None:
            return None

        session = session or self.new_session()
        target = Path(dest_dir) if dest_dir else Path(tempfile.gettempdir())
        send = self.sender(access)

        return await self._run_transfer(
            session,
            f"download of {file.name}",
            lambda: self.downloader.download(send, file, session, target),
            file_id=file.id,
        )

    async def upload_files(
        self,
        owner: str,
        local_file: Path,
        relative_path: Optional[str] = None,
        folder: str = "root",
        session: Optional[TransferSession] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Upload ``local_file`` below ``folder``, recreating its relative path.

        Missing folders of ``relative_path`` are created. A file of the same
        name already in the target folder gets a new revision instead of a
        duplicate.

        Args:
            owner: Account to use
            local_file: File to read
            relative_path: Remote path relative to ``folder`` (``a/b/c.txt``);
                the file name alone by default
            folder: Id of the folder the path starts from
            session: Receives progress; a new one is created if omitted

        Returns:
            Metadata of the stored file, or None if the upload failed
        """
        access = await self.get_valid_access(owner)
        if access is None:
            return None

        local_file = Path(local_file)
        session = session or self.new_session()
        send = self.sender(access)
        *folders, filename = FolderPathCache.normalize(relative_path or local_file.name).split("/")

        async def upload() -> Dict[str, Any]:
            parent_id = await self._ensure_folders(send, folders, folder)
            existing = await self._find_child(send, filename, parent_id)
            session_uri = await self.uploader.create_session(
                send,
                filename,
                local_file.stat().st_size,
                self._guess_mime(filename),
                parent_id=parent_id,
                file_id=existing.id if existing else None,
            )
            return await self.uploader.upload(send, session_uri, local_file, session)

        return await self._run_transfer(session, f"upload of {filename}", upload, folder=folder)

    async def update_file(
        self,
        owner: str,
        local_path: Path,
        session: Optional[TransferSession] = None,
        remote_file: Optional[DriveFile] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Upload ``local_path`` as a new revision of ``remote_file``.

        Without ``remote_file`` the file is created in the root folder.
        """
        access = await self.get_valid_access(owner)
        if access is None:
            return None

        local_path = Path(local_path)
        session = session or self.new_session()
        send = self.sender(access)

        async def update() -> Dict[str, Any]:
            size = local_path.stat().st_size
            session.report(0, size)
            session_uri = await self.uploader.create_session(
                send,
                local_path.name,
                size,
                self._guess_mime(local_path.name),
                file_id=remote_file.id if remote_file else None,
            )
            return await self.uploader.upload(send, session_uri, local_path, session)

        return await self._run_transfer(
            session,
            f"update of {local_path.name}",
            update,
            file_id=remote_file.id if remote_file else None,
        )

    async def create_folder(self, owner: str, parent: str, name: str) -> Optional[DriveFile]:
        """Create ``name`` under ``parent`` and cache it."""
        access = await self.get_valid_access(owner)
        if access is None:
            return None

        try:
            created = await self._mkdir(self.sender(access), parent, name)
        except (httpx.HTTPError, CredentialError, ValidationError, ValueError) as e:
            logger.error(f"Error creating Google Drive folder {name}: {e}")
            return None

        if created is not None:
            self.folder_cache.remember_child(parent, name, created.id)
        return created

    async def _run_transfer(
        self,
        session: TransferSession,
        label: str,
        work: Callable[[], Awaitable[T]],
        **context: Any,
    ) -> Optional[T]:
        """Run one transfer, publishing its lifecycle and absorbing its failure."""
        session.set_state(TransferState.STARTED, **create_error_context(**context))
        try:
            result = await work()
        except TransferCancelledError as e:
            logger.info(f"The {label} was cancelled: {e.message}")
            session.set_state(TransferState.CANCELLED, error=e.message)
            return None
        except (TransferError, CredentialError) as e:
            logger.error(f"The {label} failed: {e.message}")
            session.set_state(TransferState.FAILED, **e.to_dict())
            return None
        except (httpx.HTTPError, ValidationError, ValueError, OSError) as e:
            logger.error(f"The {label} failed: {e}")
            session.set_state(TransferState.FAILED, error=str(e))
            return None

        session.set_state(TransferState.COMPLETED)
        return result

    async def _ensure_folders(self, send: Send, folders: List[str], start_id: str) -> str:
        """
        Resolve ``folders`` below ``start_id``, creating the missing ones.

        Returns:
            Id of the deepest folder
        """
        async def lookup(name: str, parent_id: str) -> Optional[str]:
            found = await self._find_child(send, name, parent_id, folders_only=True)
            return found.id if found else None

        chain = await self.folder_cache.resolve(folders, start_id, lookup)
        parent_id = chain[-1] if chain else start_id

        for index in range(len(chain), len(folders)):
            created = await self._mkdir(send, parent_id, folders[index])
            if created is None:
                raise TransferError(
                    f"Could not create folder {folders[index]}",
                    context=create_error_context(parent_id=parent_id),
                )
            self.folder_cache.remember("/".join(folders[: index + 1]), created.id, start_id)
            parent_id = created.id

        return parent_id

    async def _find_child(
        self, send: Send, name: str, parent_id: str, folders_only: bool = False
    ) -> Optional[DriveFile]:
        query = f"'{_quote(parent_id)}' in parents and trashed = false and name = '{_quote(name)}'"
        if folders_only:
            query += f" and mimeType = '{FOLDER_MIME_TYPE}'"

        response = await send(
            "GET",
            f"{self.api_url}/files",
            params={
                "q": query,
                "fields": "files(id, name, mimeType)",
                "pageSize": "10",
                "supportsAllDrives": "true",
                "includeItemsFromAllDrives": "true",
            },
        )
        response.raise_for_status()
        listing = FileListing.model_validate(response.json())
        return listing.files[0] if listing.files else None

    async def _mkdir(self, send: Send, parent_id: str, name: str) -> Optional[DriveFile]:
        response = await send(
            "POST",
            f"{self.api_url}/files",
            params={"supportsAllDrives": "true"},
            json={"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]},
        )
        if not response.is_success:
            logger.error(f"Error creating Google Drive folder {name}: {response.status_code}")
            return None

        folder = DriveFile.model_validate(response.json())
        logger.info(f"Created folder: {name}")
        return folder

    @staticmethod
    def _guess_mime(filename: str) -> str:
        return mimetypes.guess_type(filename)[0] or "application/octet-stream"
