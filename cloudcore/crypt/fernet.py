"""
Fernet-based crypto backend.

Blobs are encrypted with a master key from the environment. When a salt is
supplied, a per-record key is derived from the master key with PBKDF2.
"""

import base64
import hashlib
import logging
import os
from typing import Dict, Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..exceptions import CryptoError
from ..models.crypt import CryptBlob, CryptMode
from .base import CryptoBackend

logger = logging.getLogger(__name__)


class FernetCryptoBackend(CryptoBackend):
    """
    Symmetric encryption of credential strings.

    Tokens are encrypted at rest using Fernet; plaintext exists only in the
    return value of decrypt_to_string.
    """

    DEFAULT_ITERATIONS = 100_000

    def __init__(
        self,
        master_key: Optional[str] = None,
        master_key_env: str = "CLOUDCORE_MASTER_KEY",
        iterations: int = DEFAULT_ITERATIONS,
    ):
        """
        Initialize the backend.

        Args:
            master_key: Explicit key (Fernet key or any passphrase)
            master_key_env: Environment variable read when master_key is None
            iterations: PBKDF2 iterations for salted keys
        """
        self.master_key_env = master_key_env
        self.iterations = iterations
        self._master_key = self._normalize_key(master_key or os.environ.get(master_key_env))
        self._fernet = Fernet(self._master_key)
        self._derived: Dict[bytes, Fernet] = {}

    def _normalize_key(self, key: Optional[str]) -> bytes:
        """Return a valid Fernet key, deriving one from a passphrase if needed."""
        if not key:
            # Tokens written with an ephemeral key cannot be read after restart
            logger.warning(
                f"{self.master_key_env} not set. "
                "Using ephemeral key - stored credentials will be lost on restart."
            )
            return Fernet.generate_key()

        if len(key) != 44:  # Fernet keys are 44 chars base64
            return base64.urlsafe_b64encode(hashlib.sha256(key.encode()).digest())
        return key.encode()

    def _cipher(self, salt: Optional[bytes]) -> Fernet:
        if not salt:
            return self._fernet

        cipher = self._derived.get(salt)
        if cipher is None:
            kdf = PBKDF2HMAC(
                algorithm=hashes.SHA256(),
                length=32,
                salt=salt,
                iterations=self.iterations,
            )
            cipher = Fernet(base64.urlsafe_b64encode(kdf.derive(self._master_key)))
            self._derived[salt] = cipher
        return cipher

    def encrypt_string(self, plaintext: str, salt: Optional[bytes] = None) -> CryptBlob:
        try:
            token = self._cipher(salt).encrypt(plaintext.encode("utf-8"))
        except (TypeError, ValueError) as e:
            raise CryptoError(f"Failed to encrypt value: {e}", cause=e)
        return CryptBlob(ciphertext=token, mode=int(CryptMode.ENCRYPT))

    def decrypt_to_string(self, blob: CryptBlob, salt: Optional[bytes] = None) -> str:
        if not blob.is_encrypted:
            raise CryptoError(
                "Blob is not encrypted",
                error_code="CRYPTO_MODE_MISMATCH",
                context={"mode": blob.mode},
            )
        try:
            blob.plaintext = self._cipher(salt).decrypt(blob.ciphertext)
        except InvalidToken as e:
            raise CryptoError("Blob could not be decrypted with the configured key", cause=e)
        try:
            return blob.plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CryptoError("Decrypted value is not valid text", cause=e)
