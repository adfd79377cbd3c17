"""
Resumable transfer engine.
"""

from .backoff import poll_delay_ms
from .chunking import ChunkRange, parse_range_header, plan_chunks
from .download import FileDownloader, OperationPoller, export_extension, local_filename
from .progress import (
    CallbackProgressSink,
    MessageKind,
    NullProgressSink,
    ProgressMessage,
    ProgressSink,
    QueueProgressSink,
)
from .upload import ResumableUploader, Send, check_cancelled

__all__ = [
    "poll_delay_ms",
    "ChunkRange",
    "parse_range_header",
    "plan_chunks",
    "FileDownloader",
    "OperationPoller",
    "export_extension",
    "local_filename",
    "CallbackProgressSink",
    "MessageKind",
    "NullProgressSink",
    "ProgressMessage",
    "ProgressSink",
    "QueueProgressSink",
    "ResumableUploader",
    "Send",
    "check_cancelled",
]
