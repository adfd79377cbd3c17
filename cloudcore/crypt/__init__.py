"""
Encryption collaborators for credentials at rest.
"""

from .base import CryptoBackend
from .codec import CredentialCodec
from .fernet import FernetCryptoBackend

__all__ = [
    "CryptoBackend",
    "CredentialCodec",
    "FernetCryptoBackend",
]
