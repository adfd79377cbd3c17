"""
Persisted per-account credentials.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional

from .crypt import CryptBlob


class StorageProvider(str, Enum):
    """Remote backend kinds."""
    UNRECOGNIZED = "unrecognized"
    GOOGLE = "google"
    DROPBOX = "dropbox"
    ONEDRIVE = "onedrive"
    TERABOX = "terabox"

    @classmethod
    def parse(cls, value: str) -> "StorageProvider":
        try:
            return cls(value)
        except ValueError:
            return cls.UNRECOGNIZED


@dataclass
class Credential:
    """
    Encrypted OAuth token pair for one account on one backend.

    ``owner`` is unique per ``provider``. ``expiry`` is a UTC unix timestamp.
    """
    access_token: CryptBlob
    refresh_token: CryptBlob
    expiry: int
    owner: str
    provider: StorageProvider = StorageProvider.GOOGLE
    salt: Optional[CryptBlob] = None

    def is_stale(self, now: int) -> bool:
        """A credential expiring exactly now is already stale."""
        return self.expiry <= now

    def with_access_token(self, access_token: CryptBlob, expiry: int) -> "Credential":
        """Copy with a new access token; the refresh token is kept."""
        return replace(self, access_token=access_token, expiry=expiry)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "access_token": self.access_token.to_dict(),
            "refresh_token": self.refresh_token.to_dict(),
            "expiry": self.expiry,
            "owner": self.owner,
            "provider": self.provider.value,
            "salt": self.salt.to_dict() if self.salt else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Credential":
        salt = None
        if data.get("salt"):
            salt = CryptBlob.from_dict(data["salt"])
        return cls(
            access_token=CryptBlob.from_dict(data["access_token"]),
            refresh_token=CryptBlob.from_dict(data["refresh_token"]),
            expiry=int(data["expiry"]),
            owner=data["owner"],
            provider=StorageProvider.parse(data.get("provider", "")),
            salt=salt,
        )
