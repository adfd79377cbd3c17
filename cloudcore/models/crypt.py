"""
Opaque encrypted blobs.
"""

import base64
from dataclasses import dataclass, field
from enum import IntFlag
from typing import Any, Dict, Optional


class CryptMode(IntFlag):
    """How the stored bytes were produced."""
    HASH = 0b0001
    ENCODE = 0b0010
    ENCRYPT = 0b0100
    HMAC = 0b1000
    MODIFIED_DURING_SERIALIZATION = 0b1000_0000


@dataclass
class CryptBlob:
    """
    Ciphertext plus its working mode.

    ``plaintext`` is filled only in memory after a decrypt call; it is
    excluded from equality, repr and every serialized form.
    """
    ciphertext: bytes
    mode: int = int(CryptMode.ENCRYPT)
    plaintext: Optional[bytes] = field(default=None, repr=False, compare=False)

    @property
    def is_encrypted(self) -> bool:
        return bool(self.mode & CryptMode.ENCRYPT)

    def forget(self) -> None:
        """Drop the transient plaintext."""
        self.plaintext = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": base64.urlsafe_b64encode(self.ciphertext).decode("ascii"),
            "mode": int(self.mode),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CryptBlob":
        return cls(
            ciphertext=base64.urlsafe_b64decode(data["data"].encode("ascii")),
            mode=int(data.get("mode", CryptMode.ENCRYPT)),
        )
