"""
Exception hierarchy for CloudCore.

Expected failures (stale token that cannot be refreshed, cache miss, non-OK
listing) are reported as absent values by the lower layers. The classes here
are raised only for non-recoverable states: protocol violations during a
transfer, a failed server-side job, configuration or storage faults.
"""

from typing import Any, Dict, Optional


def create_error_context(**kwargs: Any) -> Dict[str, Any]:
    """Build an error context dict, dropping empty values."""
    return {key: value for key, value in kwargs.items() if value is not None}


class CloudCoreError(Exception):
    """Base class for all CloudCore errors."""

    default_code = "CLOUDCORE_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.context = context or {}
        self.user_message = user_message or message
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "user_message": self.user_message,
            "context": self.context,
            "cause": repr(self.cause) if self.cause else None,
        }


class ConfigurationError(CloudCoreError):
    """Invalid or incomplete configuration."""
    default_code = "CONFIGURATION_ERROR"


class StoreError(CloudCoreError):
    """The secure record store could not be read or written."""
    default_code = "STORE_ERROR"


class CryptoError(CloudCoreError):
    """Encryption or decryption of a blob failed."""
    default_code = "CRYPTO_ERROR"


class CredentialError(CloudCoreError):
    """Missing, undecryptable or unrefreshable credential."""
    default_code = "CREDENTIAL_ERROR"


class TransferError(CloudCoreError):
    """A transfer hit a non-recoverable protocol state and was aborted."""
    default_code = "TRANSFER_ERROR"


class UploadSessionError(TransferError):
    """The resumable session could not be opened (no Location header)."""
    default_code = "UPLOAD_SESSION_ERROR"


class ChunkUploadError(TransferError):
    """A chunk PUT was rejected or answered outside the protocol."""
    default_code = "CHUNK_UPLOAD_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        range_lower: Optional[int] = None,
        range_upper: Optional[int] = None,
        **kwargs: Any,
    ):
        kwargs.setdefault(
            "context",
            create_error_context(
                status_code=status_code,
                range_lower=range_lower,
                range_upper=range_upper,
            ),
        )
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.range_lower = range_lower
        self.range_upper = range_upper


class OperationFailedError(TransferError):
    """A long-running server operation finished with an error."""
    default_code = "OPERATION_FAILED"


class TransferCancelledError(TransferError):
    """The caller cancelled the transfer; uploaded bytes are not rolled back."""
    default_code = "TRANSFER_CANCELLED"
