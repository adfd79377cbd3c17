"""
Shared builders for the unit tests.
"""

import base64
import json
from typing import Callable, List, Optional

import httpx

from cloudcore.config.settings import OAuthClientConfig
from cloudcore.crypt.codec import CredentialCodec
from cloudcore.crypt.fernet import FernetCryptoBackend
from cloudcore.models.credential import Credential, StorageProvider
from cloudcore.state.credentials import CredentialRepository
from cloudcore.state.memory import InMemoryRecordStore

NOW = 1_700_000_000


class FakeClock:
    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now


class RecordingSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeListener:
    """Stands in for the loopback server."""

    def __init__(self, port: int = 51234):
        self.port = port
        self.on_url = None
        self.started = 0
        self.stopped = 0

    async def start(self, on_url) -> int:
        self.on_url = on_url
        self.started += 1
        return self.port

    async def stop(self) -> None:
        self.stopped += 1


def make_backend() -> FernetCryptoBackend:
    return FernetCryptoBackend(master_key="unit-test-master-key", iterations=1000)


def make_codec() -> CredentialCodec:
    return CredentialCodec(make_backend())


def make_credential(
    codec: CredentialCodec,
    owner: str = "alice@example.com",
    expiry: int = NOW + 3600,
    access_token: str = "access-1",
    refresh_token: str = "refresh-1",
    provider: StorageProvider = StorageProvider.GOOGLE,
) -> Credential:
    salt = codec.new_salt()
    return Credential(
        access_token=codec.wrap(access_token, salt),
        refresh_token=codec.wrap(refresh_token, salt),
        expiry=expiry,
        owner=owner,
        provider=provider,
        salt=salt,
    )


def make_id_token(claims: dict) -> str:
    """Unsigned JWT carrying ``claims``; only its payload is ever read."""
    def encode(part: dict) -> str:
        raw = json.dumps(part).encode()
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()

    return f"{encode({'alg': 'RS256', 'typ': 'JWT'})}.{encode(claims)}.c2lnbmF0dXJl"


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def oauth_config() -> OAuthClientConfig:
    return OAuthClientConfig(client_id="client-id", client_secret="client-secret")


async def repository_with(
    store: InMemoryRecordStore, credentials: Optional[List[Credential]] = None
) -> CredentialRepository:
    repo = CredentialRepository(store, StorageProvider.GOOGLE, credentials)
    await repo.persist()
    return repo
