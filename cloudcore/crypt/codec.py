"""
Credential codec: plaintext strings to and from encrypted blobs.
"""

import logging
import os
from typing import Optional

from ..exceptions import CryptoError
from ..models.crypt import CryptBlob, CryptMode
from .base import CryptoBackend

logger = logging.getLogger(__name__)


class CredentialCodec:
    """Wraps and unwraps credential secrets, reporting failure as None."""

    SALT_LENGTH = 16

    def __init__(self, backend: CryptoBackend):
        self.backend = backend

    def wrap(self, plaintext: str, salt: Optional[CryptBlob] = None) -> Optional[CryptBlob]:
        """Encrypt a secret; None if the backend refuses it."""
        try:
            return self.backend.encrypt_string(plaintext, self._salt_bytes(salt))
        except CryptoError as e:
            logger.error(f"Error encrypting secret: {e.message}")
            return None

    def unwrap(self, blob: CryptBlob, salt: Optional[CryptBlob] = None) -> Optional[str]:
        """Decrypt a secret; None if it cannot be read."""
        try:
            return self.backend.decrypt_to_string(blob, self._salt_bytes(salt))
        except CryptoError as e:
            logger.error(f"Error decrypting secret: {e.message}")
            return None
        finally:
            blob.forget()

    def new_salt(self) -> CryptBlob:
        """Random salt, stored encoded rather than encrypted."""
        return CryptBlob(ciphertext=os.urandom(self.SALT_LENGTH), mode=int(CryptMode.ENCODE))

    @staticmethod
    def _salt_bytes(salt: Optional[CryptBlob]) -> Optional[bytes]:
        return salt.ciphertext if salt is not None else None
