"""
Download through a long-running server operation.

The server first prepares the file (exporting remote-only documents to a
local format), the client polls the operation with a growing delay, then
streams the resulting URI to disk.
"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError

from ..config.constants import (
    DRIVE_API_URL,
    EXPORT_EXTENSIONS,
    FILE_UPLOAD_CHUNK_SIZE,
    POLL_BACKOFF_FACTOR,
    POLL_BASE_DELAY_MS,
    POLL_MAX_DELAY_MS,
)
from ..exceptions import OperationFailedError, TransferError, create_error_context
from ..models.drive import DriveFile, Operation
from ..models.transfer import TransferSession
from .backoff import poll_delay_ms
from .upload import Send, check_cancelled

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def export_extension(mime_type: str) -> str:
    """Local extension forced on remote-only documents; empty otherwise."""
    return EXPORT_EXTENSIONS.get(mime_type, "")


def local_filename(file: DriveFile) -> str:
    extension = export_extension(file.mime_type)
    if extension and not file.name.lower().endswith(extension):
        return f"{file.name}{extension}"
    return file.name


class OperationPoller:
    """
    Starts download operations and waits for them to finish.

    A failed status fetch is logged and the previous state is polled
    again. With ``max_failures`` set, that many consecutive failures
    abort the wait.
    """

    def __init__(
        self,
        base_delay_ms: float = POLL_BASE_DELAY_MS,
        backoff_factor: float = POLL_BACKOFF_FACTOR,
        max_delay_ms: float = POLL_MAX_DELAY_MS,
        max_failures: Optional[int] = None,
        sleep: Sleep = asyncio.sleep,
        api_url: str = DRIVE_API_URL,
    ):
        self.base_delay_ms = base_delay_ms
        self.backoff_factor = backoff_factor
        self.max_delay_ms = max_delay_ms
        self.max_failures = max_failures
        self.api_url = api_url
        self._sleep = sleep

    async def start(self, send: Send, file_id: str) -> Operation:
        """Ask the server to prepare ``file_id`` for download."""
        try:
            response = await send("POST", f"{self.api_url}/files/{file_id}/download")
            response.raise_for_status()
            return Operation.model_validate(response.json())
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            raise OperationFailedError(
                f"Could not start download of {file_id}: {e}",
                context=create_error_context(file_id=file_id),
                cause=e,
            )

    async def fetch(self, send: Send, name: str) -> Operation:
        response = await send("GET", f"{self.api_url}/operations/{name}")
        response.raise_for_status()
        return Operation.model_validate(response.json())

    async def wait(
        self,
        send: Send,
        operation: Operation,
        session: Optional[TransferSession] = None,
    ) -> Operation:
        """
        Poll until ``operation`` is done.

        Raises:
            OperationFailedError: If the operation ends with an error, or the
                failure limit is reached
            TransferCancelledError: If the session is cancelled while waiting
        """
        attempt = 0
        failures = 0

        while not operation.done:
            if session is not None:
                check_cancelled(session)

            attempt += 1
            delay = poll_delay_ms(attempt, self.base_delay_ms, self.backoff_factor, self.max_delay_ms)
            logger.debug(f"Waiting {delay}ms before checking operation {operation.name}")
            await self._sleep(delay / 1000)

            try:
                operation = await self.fetch(send, operation.name)
                failures = 0
            except (httpx.HTTPError, ValidationError, ValueError) as e:
                failures += 1
                logger.warning(f"Error fetching operation {operation.name}: {e}")
                if self.max_failures is not None and failures >= self.max_failures:
                    raise OperationFailedError(
                        f"Operation {operation.name} unreachable after {failures} attempts",
                        context=create_error_context(operation=operation.name, failures=failures),
                        cause=e,
                    )

        if operation.error is not None:
            raise OperationFailedError(
                f"Operation {operation.name} failed: {operation.error.message}",
                context=create_error_context(operation=operation.name, code=operation.error.code),
            )
        return operation


class FileDownloader:
    """Prepares a remote file through an operation and streams it to disk."""

    def __init__(self, poller: OperationPoller, chunk_size: int = FILE_UPLOAD_CHUNK_SIZE):
        self.poller = poller
        self.chunk_size = chunk_size

    async def download(
        self,
        send: Send,
        file: DriveFile,
        session: TransferSession,
        dest_dir: Path,
    ) -> Path:
        """
        Download ``file`` into ``dest_dir``.

        The local path is also stored on the session's manual override so
        the caller can take it over later.

        Returns:
            Path of the downloaded file
        """
        operation = await self.poller.start(send, file.id)
        operation = await self.poller.wait(send, operation, session)
        if operation.response is None:
            raise OperationFailedError(
                f"Operation {operation.name} finished without a download URI",
                context=create_error_context(operation=operation.name, file_id=file.id),
            )

        path = Path(dest_dir) / local_filename(file)
        await self.stream_to(send, operation.response.download_uri, path, session)
        session.manual_override.path = str(path)
        return path

    async def stream_to(self, send: Send, uri: str, path: Path, session: TransferSession) -> int:
        """
        Stream ``uri`` into ``path``, reporting cumulative bytes per chunk.

        Data lands in a ``.part`` file renamed into place on success.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".part")
        current = 0

        response = await send("GET", uri, stream=True)
        try:
            if not response.is_success:
                raise TransferError(
                    f"Download of {path.name} refused with status {response.status_code}",
                    context=create_error_context(status_code=response.status_code),
                )
            total = int(response.headers.get("Content-Length") or 0)

            with open(tmp_path, "wb") as out:
                async for data in response.aiter_bytes(self.chunk_size):
                    check_cancelled(session)
                    out.write(data)
                    current += len(data)
                    session.report(current, total or current)
            tmp_path.replace(path)
        except httpx.HTTPError as e:
            raise TransferError(f"Download of {path.name} interrupted: {e}", cause=e)
        finally:
            await response.aclose()
            # Already renamed away when the download completed
            tmp_path.unlink(missing_ok=True)

        session.report(current, current)
        logger.info(f"Downloaded {path.name} ({current} bytes)")
        return current
