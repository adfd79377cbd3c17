"""
Wire constants for the Google-Drive-shaped backend.
"""

# Identity provider
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_DEFAULT_SCOPES = ["https://www.googleapis.com/auth/drive", "email"]

# Storage REST contract
DRIVE_API_URL = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3"

LISTING_PAGE_SIZE = 50
LISTING_ORDER_BY = "folder,name_natural"
EXTENDED_FILE_FIELDS = (
    "id, name, size, mimeType, kind, parents, thumbnailLink, shared, "
    "lastModifyingUser, owners, sharingUser, createdTime, modifiedTime"
)

# Loopback redirect target
LOOPBACK_HOST = "127.0.0.1"

# Transfer defaults
FILE_UPLOAD_CHUNK_SIZE = 1024 ** 2  # 1 MiB
UPLOAD_CHUNK_GRANULARITY = 256 * 1024
POLL_BASE_DELAY_MS = 2000
POLL_BACKOFF_FACTOR = 1.5
POLL_MAX_DELAY_MS = 60000
DEFAULT_REQUEST_TIMEOUT = 60.0
DEFAULT_FOLDER_CACHE_SIZE = 4096
DEFAULT_PROGRESS_QUEUE_SIZE = 256

# Mime types
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
SHORTCUT_MIME_TYPE = "application/vnd.google-apps.shortcut"
FOLDER_LIKE_MIMES = [FOLDER_MIME_TYPE, SHORTCUT_MIME_TYPE]

# Remote-only documents are exported to these local formats
EXPORT_EXTENSIONS = {
    "application/vnd.google-apps.document": ".docx",
    "application/vnd.google-apps.spreadsheet": ".xlsx",
    "application/vnd.google-apps.presentation": ".pptx",
    "application/vnd.google-apps.drawing": ".png",
}

# Record store
PROVIDERS_RECORD = "providers"
