"""
Secure persistence of records and credentials.
"""

from .base import RecordKey, SecureRecordStore
from .credentials import CredentialRepository
from .file import EncryptedFileRecordStore
from .memory import InMemoryRecordStore

__all__ = [
    "RecordKey",
    "SecureRecordStore",
    "CredentialRepository",
    "EncryptedFileRecordStore",
    "InMemoryRecordStore",
]
