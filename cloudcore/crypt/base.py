"""
Crypto collaborator interface.

The core never touches key material; it hands plaintext strings to a backend
and receives opaque blobs back.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..models.crypt import CryptBlob


class CryptoBackend(ABC):
    """Abstract encryption primitive provider."""

    @abstractmethod
    def encrypt_string(self, plaintext: str, salt: Optional[bytes] = None) -> CryptBlob:
        """
        Encrypt a string.

        Args:
            plaintext: Value to protect
            salt: Optional per-record salt mixed into the key

        Returns:
            Encrypted blob

        Raises:
            CryptoError: If encryption fails
        """
        pass

    @abstractmethod
    def decrypt_to_string(self, blob: CryptBlob, salt: Optional[bytes] = None) -> str:
        """
        Decrypt a blob back to its string value.

        Args:
            blob: Blob produced by encrypt_string
            salt: Salt used at encryption time

        Returns:
            Plaintext string

        Raises:
            CryptoError: If the blob cannot be decrypted
        """
        pass
