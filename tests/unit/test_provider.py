"""
Tests for the Google Drive provider facade.
"""

import json
import re
import tempfile
from pathlib import Path

import httpx
import pytest

from cloudcore.auth.google import GoogleTokenManager
from cloudcore.config.constants import FOLDER_MIME_TYPE
from cloudcore.config.settings import TransferConfig
from cloudcore.models.drive import DriveFile
from cloudcore.models.transfer import TransferSession, TransferState
from cloudcore.providers.google import GoogleDriveProvider
from cloudcore.state.memory import InMemoryRecordStore
from cloudcore.transfer.progress import CallbackProgressSink, MessageKind

from helpers import NOW, FakeClock, FakeListener, RecordingSleep, make_codec, make_credential, oauth_config, repository_with

SESSION_URI = "https://www.googleapis.com/upload/drive/v3/files?upload_id=session-1"
OWNER = "alice@example.com"


class FakeDrive:
    """Just enough of the Drive REST surface for the facade."""

    def __init__(self, token_status=200, put_status=200):
        self.token_status = token_status
        self.put_status = put_status
        self.children = {}
        self.requests = []
        self.token_requests = 0
        self.created = 0

    def add(self, parent, name, file_id, mime_type="text/plain"):
        self.children[(parent, name)] = {"id": file_id, "name": name, "mimeType": mime_type}

    def drive_requests(self):
        return [r for r in self.requests if "oauth2" not in r.url.host]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.url.host == "oauth2.googleapis.com":
            self.token_requests += 1
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "access-2", "expires_in": 3600})

        if path == "/drive/v3/files" and request.method == "GET":
            return self._query(request.url.params["q"])

        if path == "/drive/v3/files" and request.method == "POST":
            body = json.loads(request.content)
            self.created += 1
            folder_id = f"folder-{body['name']}"
            self.add(body["parents"][0], body["name"], folder_id, body["mimeType"])
            return httpx.Response(200, json={"id": folder_id, "name": body["name"], "mimeType": body["mimeType"]})

        if path.startswith("/drive/v3/files/") and request.method == "GET":
            return httpx.Response(200, json={
                "id": path.rsplit("/", 1)[-1],
                "name": "report.pdf",
                "mimeType": "application/pdf",
                "size": "2048",
                "parents": ["root"],
                "shared": True,
                "owners": [{"displayName": "Alice", "emailAddress": OWNER, "me": True}],
                "modifiedTime": "2024-05-01T10:00:00.000Z",
            })

        if path.startswith("/upload/drive/v3/files") and request.method in ("POST", "PATCH"):
            return httpx.Response(200, headers={"Location": SESSION_URI})

        if request.method == "PUT":
            if self.put_status != 200:
                return httpx.Response(self.put_status)
            return httpx.Response(200, json={"id": "uploaded-1", "name": "c.txt"})

        return httpx.Response(404)

    def _query(self, query):
        parent = re.search(r"'([^']*)' in parents", query).group(1)
        name = re.search(r"name = '([^']*)'", query)
        if name is None:
            files = [f for (p, _), f in self.children.items() if p == parent]
            return httpx.Response(200, json={"files": files, "nextPageToken": "page-2"})

        found = self.children.get((parent, name.group(1)))
        if found and "mimeType = " in query and found["mimeType"] != FOLDER_MIME_TYPE:
            found = None
        return httpx.Response(200, json={"files": [found] if found else []})


class SlowUploadDrive(FakeDrive):
    """Resumable upload endpoint that lets the token expire between chunks."""

    CHUNK = 256 * 1024

    def __init__(self, clock, total, **kwargs):
        super().__init__(**kwargs)
        self.clock = clock
        self.total = total
        self.put_tokens = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth2.googleapis.com" and self.token_status == 200:
            self.requests.append(request)
            self.token_requests += 1
            return httpx.Response(200, json={"access_token": f"access-{self.token_requests + 1}", "expires_in": 3600})

        if request.method == "PUT":
            self.requests.append(request)
            self.put_tokens.append(request.headers["Authorization"])
            self.clock.now += 4000
            upper = int(request.headers["Content-Range"].split("-")[1].split("/")[0])
            if upper == self.total - 1:
                return httpx.Response(200, json={"id": "uploaded-1", "name": "big.bin"})
            return httpx.Response(308, headers={"Range": f"bytes=0-{upper}"})

        return super().__call__(request)


async def build_provider(drive, expiry=NOW + 3600, sink=None, sleep=None, clock=None, config=None):
    codec = make_codec()
    repo = await repository_with(InMemoryRecordStore(), [make_credential(codec, expiry=expiry)])
    http = httpx.AsyncClient(transport=httpx.MockTransport(drive))
    manager = GoogleTokenManager(
        oauth_config(), repo, codec, http, listener=FakeListener(), open_url=lambda url: None, clock=clock or FakeClock()
    )
    return GoogleDriveProvider(manager, http, config=config, sink=sink, sleep=sleep or RecordingSleep())


class TestListFiles:
    """Tests for list_files."""

    @pytest.mark.asyncio
    async def test_lists_with_bearer_token(self):
        drive = FakeDrive()
        drive.add("root", "a", "id-a", FOLDER_MIME_TYPE)
        provider = await build_provider(drive)

        listing = await provider.list_files(OWNER)

        assert [f.id for f in listing.files] == ["id-a"]
        assert listing.files[0].is_folder
        assert listing.next_page_token == "page-2"
        request = drive.requests[0]
        assert request.headers["Authorization"] == "Bearer access-1"
        assert request.url.params["q"] == "trashed = false and 'root' in parents"
        assert request.url.params["orderBy"] == "folder,name_natural"
        assert request.url.params["pageSize"] == "50"

    @pytest.mark.asyncio
    async def test_page_token_forwarded(self):
        drive = FakeDrive()
        provider = await build_provider(drive)

        await provider.list_files(OWNER, "folder-9", "page-2")

        assert drive.requests[0].url.params["pageToken"] == "page-2"

    @pytest.mark.asyncio
    async def test_failed_refresh_returns_error_listing(self):
        drive = FakeDrive(token_status=400)
        provider = await build_provider(drive, expiry=NOW - 1)

        listing = await provider.list_files(OWNER)

        assert listing.is_error
        assert listing.next_page_token == ""
        assert listing.files == []
        assert drive.token_requests == 1
        assert drive.drive_requests() == []

    @pytest.mark.asyncio
    async def test_stale_token_refreshed_before_call(self):
        drive = FakeDrive()
        provider = await build_provider(drive, expiry=NOW - 1)

        await provider.list_files(OWNER)

        assert drive.token_requests == 1
        assert drive.drive_requests()[0].headers["Authorization"] == "Bearer access-2"

    @pytest.mark.asyncio
    async def test_unknown_owner(self):
        drive = FakeDrive()
        provider = await build_provider(drive)

        assert (await provider.list_files("nobody@example.com")).is_error
        assert drive.requests == []

    @pytest.mark.asyncio
    async def test_server_error_returns_error_listing(self):
        def handler(request):
            return httpx.Response(500)

        provider = await build_provider(handler)
        assert (await provider.list_files(OWNER)).is_error


class TestGetFile:
    """Tests for get_file."""

    @pytest.mark.asyncio
    async def test_extended_metadata(self):
        drive = FakeDrive()
        provider = await build_provider(drive)

        extended = await provider.get_file(OWNER, DriveFile(id="file-7", name="report.pdf"))

        assert extended.size == 2048
        assert extended.owners[0].email_address == OWNER
        assert extended.shared
        assert "lastModifyingUser" in drive.requests[0].url.params["fields"]


class TestUploadFiles:
    """Tests for upload_files and update_file."""

    @pytest.mark.asyncio
    async def test_creates_missing_folders_and_file(self):
        drive = FakeDrive()
        drive.add("root", "a", "id-a", FOLDER_MIME_TYPE)
        messages = []
        provider = await build_provider(drive, sink=CallbackProgressSink(messages.append))

        with tempfile.TemporaryDirectory() as tmpdir:
            source = Path(tmpdir) / "c.txt"
            source.write_bytes(b"hello drive")
            result = await provider.upload_files(OWNER, source, "a/b/c.txt")

        assert result == {"id": "uploaded-1", "name": "c.txt"}
        assert drive.created == 1
        assert provider.folder_cache.get_id("a/b") == "folder-b"
        session_request = [r for r in drive.requests if r.url.path.startswith("/upload/")][0]
        assert session_request.method == "POST"
        assert json.loads(session_request.content)["parents"] == ["folder-b"]

        states = [m.state for m in messages if m.kind == MessageKind.STATE]
        assert states == [TransferState.STARTED, TransferState.COMPLETED]

    @pytest.mark.asyncio
    async def test_existing_file_is_updated_and_folders_cached(self):
        drive = FakeDrive()
        drive.add("root", "a", "id-a", FOLDER_MIME_TYPE)
        drive.add("id-a", "c.txt", "existing-c")
        provider = await build_provider(drive)

        with tempfile.TemporaryDirectory() as tmpdir:
            source = Path(tmpdir) / "c.txt"
            source.write_bytes(b"v1")
            await provider.upload_files(OWNER, source, "a/c.txt")
            drive.requests.clear()
            await provider.upload_files(OWNER, source, "a/c.txt")

        folder_lookups = [
            r for r in drive.requests
            if r.url.path == "/drive/v3/files" and "mimeType" in r.url.params.get("q", "")
        ]
        assert folder_lookups == []
        session_request = [r for r in drive.requests if r.url.path.startswith("/upload/")][0]
        assert session_request.method == "PATCH"
        assert session_request.url.path.endswith("/existing-c")

    @pytest.mark.asyncio
    async def test_rejected_chunk_reports_failure(self):
        drive = FakeDrive(put_status=500)
        messages = []
        provider = await build_provider(drive, sink=CallbackProgressSink(messages.append))

        with tempfile.TemporaryDirectory() as tmpdir:
            source = Path(tmpdir) / "c.txt"
            source.write_bytes(b"data")
            result = await provider.upload_files(OWNER, source)

        assert result is None
        states = [m.state for m in messages if m.kind == MessageKind.STATE]
        assert states == [TransferState.STARTED, TransferState.FAILED]

    @pytest.mark.asyncio
    async def test_update_file_patches_remote(self):
        drive = FakeDrive()
        provider = await build_provider(drive)
        session = TransferSession()

        with tempfile.TemporaryDirectory() as tmpdir:
            source = Path(tmpdir) / "Notes.docx"
            source.write_bytes(b"edited")
            result = await provider.update_file(
                OWNER, source, session, DriveFile(id="doc-1", name="Notes", mimeType="application/vnd.google-apps.document")
            )

        assert result["id"] == "uploaded-1"
        assert drive.requests[0].method == "PATCH"
        assert drive.requests[0].url.path == "/upload/drive/v3/files/doc-1"
        assert session.progress.current == 6
        assert session.state == TransferState.COMPLETED

    @pytest.mark.asyncio
    async def test_token_refreshed_between_chunks(self):
        clock = FakeClock()
        total = 3 * SlowUploadDrive.CHUNK + 10
        drive = SlowUploadDrive(clock, total)
        provider = await build_provider(drive, clock=clock, config=TransferConfig(chunk_size=SlowUploadDrive.CHUNK))
        session = TransferSession()

        with tempfile.TemporaryDirectory() as tmpdir:
            source = Path(tmpdir) / "big.bin"
            source.write_bytes(b"x" * total)
            result = await provider.update_file(OWNER, source, session)

        assert result == {"id": "uploaded-1", "name": "big.bin"}
        assert drive.put_tokens == ["Bearer access-1", "Bearer access-2", "Bearer access-3", "Bearer access-4"]
        assert drive.token_requests == 3
        assert session.state == TransferState.COMPLETED

    @pytest.mark.asyncio
    async def test_failed_refresh_between_chunks_fails_transfer(self):
        clock = FakeClock()
        total = 2 * SlowUploadDrive.CHUNK
        drive = SlowUploadDrive(clock, total, token_status=400)
        provider = await build_provider(drive, clock=clock, config=TransferConfig(chunk_size=SlowUploadDrive.CHUNK))
        session = TransferSession()

        with tempfile.TemporaryDirectory() as tmpdir:
            source = Path(tmpdir) / "big.bin"
            source.write_bytes(b"x" * total)
            result = await provider.update_file(OWNER, source, session)

        assert result is None
        assert drive.put_tokens == ["Bearer access-1"]
        assert session.state == TransferState.FAILED

    @pytest.mark.asyncio
    async def test_malformed_folder_response_fails_transfer(self):
        def handler(request):
            if request.url.path == "/drive/v3/files" and request.method == "GET":
                return httpx.Response(200, json={"files": []})
            if request.url.path == "/drive/v3/files" and request.method == "POST":
                return httpx.Response(200, text="<html>maintenance</html>")
            return httpx.Response(404)

        messages = []
        provider = await build_provider(handler, sink=CallbackProgressSink(messages.append))

        with tempfile.TemporaryDirectory() as tmpdir:
            source = Path(tmpdir) / "c.txt"
            source.write_bytes(b"data")
            result = await provider.upload_files(OWNER, source, "a/c.txt")

        assert result is None
        states = [m.state for m in messages if m.kind == MessageKind.STATE]
        assert states == [TransferState.STARTED, TransferState.FAILED]


class TestDownloadFile:
    """Tests for download_file."""

    @pytest.mark.asyncio
    async def test_download_to_directory(self):
        def handler(request):
            if request.url.path.endswith("/download"):
                return httpx.Response(200, json={"name": "op-1", "done": False})
            if request.url.path == "/drive/v3/operations/op-1":
                return httpx.Response(200, json={
                    "name": "op-1", "done": True, "response": {"downloadUri": "https://dl.example.com/x"},
                })
            if request.url.host == "dl.example.com":
                assert request.headers["Authorization"] == "Bearer access-1"
                return httpx.Response(200, content=b"pdf-bytes")
            return httpx.Response(404)

        sleep = RecordingSleep()
        provider = await build_provider(handler, sleep=sleep)

        with tempfile.TemporaryDirectory() as tmpdir:
            path = await provider.download_file(
                OWNER, DriveFile(id="f-1", name="report.pdf", mimeType="application/pdf"), dest_dir=Path(tmpdir)
            )
            assert path.read_bytes() == b"pdf-bytes"

        assert sleep.delays == [3.0]

    @pytest.mark.asyncio
    async def test_failed_operation_returns_none(self):
        def handler(request):
            return httpx.Response(200, json={
                "name": "op-1", "done": True, "error": {"code": 3, "message": "too large"},
            })

        session = TransferSession()
        provider = await build_provider(handler)

        with tempfile.TemporaryDirectory() as tmpdir:
            path = await provider.download_file(OWNER, DriveFile(id="f-1", name="big.bin"), session, Path(tmpdir))

        assert path is None
        assert session.state == TransferState.FAILED


class TestCreateFolder:
    """Tests for create_folder."""

    @pytest.mark.asyncio
    async def test_created_folder_is_cached(self):
        drive = FakeDrive()
        provider = await build_provider(drive)

        folder = await provider.create_folder(OWNER, "root", "Projects")

        assert folder.id == "folder-Projects"
        assert folder.is_folder
        assert provider.folder_cache.get_id("Projects") == "folder-Projects"
