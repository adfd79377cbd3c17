"""
Wire schemas for the remote storage and identity endpoints.

Field aliases match the backend's camelCase JSON; Python code uses the
snake_case names.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..config.constants import FOLDER_LIKE_MIMES


class WireModel(BaseModel):
    """Base for backend payloads: accept aliases and names, keep unknown keys out."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class DriveFile(WireModel):
    """Minimal remote object handle, as returned by listings."""
    id: str
    name: str
    mime_type: str = Field(default="application/octet-stream", alias="mimeType")

    @property
    def is_folder(self) -> bool:
        return self.mime_type in FOLDER_LIKE_MIMES


class DriveUser(WireModel):
    """Owner, sharer or last modifier of a file."""
    display_name: str = Field(default="", alias="displayName")
    photo_link: Optional[str] = Field(default=None, alias="photoLink")
    email_address: Optional[str] = Field(default=None, alias="emailAddress")
    me: bool = False


class ExtendedDriveFile(DriveFile):
    """Full metadata, fetched on demand."""
    kind: Optional[str] = None
    size: Optional[int] = None
    parents: List[str] = Field(default_factory=list)
    thumbnail_link: Optional[str] = Field(default=None, alias="thumbnailLink")
    shared: bool = False
    owners: List[DriveUser] = Field(default_factory=list)
    last_modifying_user: Optional[DriveUser] = Field(default=None, alias="lastModifyingUser")
    sharing_user: Optional[DriveUser] = Field(default=None, alias="sharingUser")
    created_time: Optional[str] = Field(default=None, alias="createdTime")
    modified_time: Optional[str] = Field(default=None, alias="modifiedTime")


class FileListing(WireModel):
    """One page of a folder listing."""
    next_page_token: Optional[str] = Field(default=None, alias="nextPageToken")
    incomplete_search: bool = Field(default=False, alias="incompleteSearch")
    files: List[DriveFile] = Field(default_factory=list)

    @property
    def is_error(self) -> bool:
        return self.next_page_token == "" and not self.files


def error_listing() -> FileListing:
    """The listing returned when the operation is unavailable."""
    return FileListing(next_page_token="", incomplete_search=False, files=[])


class OperationResult(WireModel):
    download_uri: str = Field(alias="downloadUri")
    partial_download_allowed: bool = Field(default=False, alias="partialDownloadAllowed")


class OperationError(WireModel):
    code: int = 0
    message: str = ""


class Operation(WireModel):
    """Long-running server job handle."""
    name: str
    done: bool = False
    response: Optional[OperationResult] = None
    error: Optional[OperationError] = None


class TokenResponse(WireModel):
    """Token endpoint answer for both grant types."""
    access_token: str
    expires_in: int = 3600
    refresh_token: Optional[str] = None
    id_token: Optional[str] = None
    scope: str = ""
    token_type: str = "Bearer"
