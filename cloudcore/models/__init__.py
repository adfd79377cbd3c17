"""
Data models for CloudCore.
"""

from .crypt import CryptBlob, CryptMode
from .credential import Credential, StorageProvider
from .drive import (
    DriveFile,
    DriveUser,
    ExtendedDriveFile,
    FileListing,
    Operation,
    OperationError,
    OperationResult,
    TokenResponse,
    error_listing,
)
from .transfer import (
    CancelToken,
    ManualOverride,
    Progress,
    ProgressEvent,
    TransferSession,
    TransferState,
)

__all__ = [
    "CryptBlob",
    "CryptMode",
    "Credential",
    "StorageProvider",
    "DriveFile",
    "DriveUser",
    "ExtendedDriveFile",
    "FileListing",
    "Operation",
    "OperationError",
    "OperationResult",
    "TokenResponse",
    "error_listing",
    "CancelToken",
    "ManualOverride",
    "Progress",
    "ProgressEvent",
    "TransferSession",
    "TransferState",
]
