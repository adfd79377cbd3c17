"""
Resumable chunked upload.

Chunks are sent strictly in order: chunk n+1 is never sent before the
server has confirmed the range of chunk n.
"""

import logging
from pathlib import Path
from typing import Any, Awaitable, BinaryIO, Callable, Dict, Optional

import httpx

from ..config.constants import DRIVE_UPLOAD_URL, FILE_UPLOAD_CHUNK_SIZE
from ..exceptions import ChunkUploadError, TransferCancelledError, UploadSessionError, create_error_context
from ..models.transfer import TransferSession
from .chunking import ChunkRange, parse_range_header, plan_chunks

logger = logging.getLogger(__name__)

# (method, url, **httpx request kwargs) -> response, with credentials applied
Send = Callable[..., Awaitable[httpx.Response]]


def check_cancelled(session: TransferSession) -> None:
    if session.cancelled:
        raise TransferCancelledError(
            f"Transfer {session.id} cancelled: {session.cancel_token.reason}",
            context=create_error_context(session_id=session.id),
        )


class ResumableUploader:
    """Opens resumable sessions and streams a local file through them."""

    def __init__(self, chunk_size: int = FILE_UPLOAD_CHUNK_SIZE, upload_url: str = DRIVE_UPLOAD_URL):
        self.chunk_size = chunk_size
        self.upload_url = upload_url

    async def create_session(
        self,
        send: Send,
        name: str,
        size: int,
        mime_type: str = "application/octet-stream",
        parent_id: Optional[str] = None,
        file_id: Optional[str] = None,
    ) -> str:
        """
        Open a resumable session.

        Creates a new file (POST) when ``file_id`` is None, otherwise
        replaces the content of ``file_id`` (PATCH).

        Returns:
            The session URI

        Raises:
            UploadSessionError: If the server refuses or sends no Location
        """
        metadata: Dict[str, Any] = {"name": name}
        if file_id is None:
            method = "POST"
            url = f"{self.upload_url}/files"
            if parent_id:
                metadata["parents"] = [parent_id]
        else:
            method = "PATCH"
            url = f"{self.upload_url}/files/{file_id}"

        try:
            response = await send(
                method,
                url,
                params={"uploadType": "resumable", "supportsAllDrives": "true"},
                json=metadata,
                headers={
                    "X-Upload-Content-Length": str(size),
                    "X-Upload-Content-Type": mime_type,
                },
            )
        except httpx.HTTPError as e:
            raise UploadSessionError(
                f"Could not open upload session for {name}: {e}",
                context=create_error_context(name=name, file_id=file_id),
                cause=e,
            )

        if not response.is_success:
            raise UploadSessionError(
                f"Upload session for {name} refused with status {response.status_code}",
                context=create_error_context(name=name, file_id=file_id, status_code=response.status_code),
            )

        location = response.headers.get("Location")
        if not location:
            raise UploadSessionError(
                f"Upload session for {name} returned no Location header",
                context=create_error_context(name=name, file_id=file_id),
            )

        logger.debug(f"Opened upload session for {name} ({size} bytes)")
        return location

    async def upload(
        self,
        send: Send,
        session_uri: str,
        source: Path,
        session: TransferSession,
    ) -> Dict[str, Any]:
        """
        Upload ``source`` through an open session.

        Progress is reported after every confirmed chunk; only the final
        completion reports 100%.

        Returns:
            Metadata of the stored file, as returned by the server

        Raises:
            ChunkUploadError: On a rejected chunk or a protocol violation
            TransferCancelledError: If the session was cancelled between chunks
        """
        source = Path(source)
        total = source.stat().st_size
        chunks = plan_chunks(total, self.chunk_size)

        if not chunks:
            response = await self._put_empty(send, session_uri, session)
            session.report(0, 0)
            return self._metadata(response)

        with open(source, "rb") as stream:
            for chunk in chunks:
                response = await self._send_chunk(send, session_uri, stream, chunk, session)
                if response is not None:
                    session.report(total, total)
                    logger.info(f"Upload of {source.name} completed ({total} bytes)")
                    return self._metadata(response)
                session.report(chunk.confirmed_bytes, total)

        # Every chunk was confirmed but the final one never completed
        raise ChunkUploadError(
            f"Upload of {source.name} ended without completion",
            range_lower=chunks[-1].lower,
            range_upper=chunks[-1].wire_upper,
        )

    async def _send_chunk(
        self,
        send: Send,
        session_uri: str,
        stream: BinaryIO,
        chunk: ChunkRange,
        session: TransferSession,
    ) -> Optional[httpx.Response]:
        """
        PUT one chunk until its range is confirmed.

        Returns:
            The completing response, or None once a non-final chunk is confirmed
        """
        current = chunk
        while True:
            check_cancelled(session)

            stream.seek(current.lower)
            data = stream.read(current.length)
            logger.debug(f"PUT {current.content_range} ({len(data)} bytes)")

            try:
                response = await send(
                    "PUT",
                    session_uri,
                    content=data,
                    headers={
                        "Content-Length": str(len(data)),
                        "Content-Range": current.content_range,
                    },
                )
            except httpx.HTTPError as e:
                raise ChunkUploadError(
                    f"Chunk {current.content_range} failed: {e}",
                    range_lower=current.lower,
                    range_upper=current.wire_upper,
                    cause=e,
                )

            status = response.status_code
            if not 200 <= status < 400:
                raise ChunkUploadError(
                    f"Chunk {current.content_range} rejected with status {status}",
                    status_code=status,
                    range_lower=current.lower,
                    range_upper=current.wire_upper,
                )

            try:
                echoed_upper = parse_range_header(response.headers.get("Range"))
            except ValueError as e:
                raise ChunkUploadError(
                    str(e), status_code=status, range_lower=current.lower, range_upper=current.wire_upper
                )

            if echoed_upper is None:
                if response.is_success:
                    return response
                raise ChunkUploadError(
                    f"Chunk {current.content_range} answered {status} without a Range header",
                    status_code=status,
                    range_lower=current.lower,
                    range_upper=current.wire_upper,
                )

            if echoed_upper == current.wire_upper:
                if current.final:
                    raise ChunkUploadError(
                        f"Final chunk {current.content_range} stored but upload not completed",
                        status_code=status,
                        range_lower=current.lower,
                        range_upper=current.wire_upper,
                    )
                return None

            if echoed_upper > current.wire_upper:
                raise ChunkUploadError(
                    f"Server confirmed byte {echoed_upper} beyond sent range {current.content_range}",
                    status_code=status,
                    range_lower=current.lower,
                    range_upper=current.wire_upper,
                )

            logger.warning(
                f"Range mismatch: sent {current.content_range}, server stored up to {echoed_upper}; resending"
            )
            current = current.resume_from(echoed_upper)

    async def _put_empty(self, send: Send, session_uri: str, session: TransferSession) -> httpx.Response:
        check_cancelled(session)
        try:
            response = await send(
                "PUT",
                session_uri,
                content=b"",
                headers={"Content-Length": "0", "Content-Range": "bytes */0"},
            )
        except httpx.HTTPError as e:
            raise ChunkUploadError(f"Empty upload failed: {e}", cause=e)

        if not response.is_success:
            raise ChunkUploadError(
                f"Empty upload rejected with status {response.status_code}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _metadata(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

