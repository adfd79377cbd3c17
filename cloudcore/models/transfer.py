"""
Transfer session state shared between the engine and its caller.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..transfer.progress import ProgressSink


class ProgressEvent(str, Enum):
    """Discrete events of the native-app hand-off."""
    FIRING_APP = "firing_app"
    WAITING_FOR_WAKEUP = "waiting_for_wakeup"
    SEARCHING_PROCESS = "searching_process"
    PROCESS_ANALYZED = "process_analyzed"
    PROCESS_FOUND = "process_found"
    PROCESS_NOT_FOUND = "process_not_found"
    WAITING_FOR_PROCESS_EXIT = "waiting_for_process_exit"
    PROCESS_EXITED = "process_exited"


class TransferState(str, Enum):
    """Lifecycle of a transfer, published on the progress sink."""
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class Progress:
    """Cumulative bytes transferred out of total."""
    current: int = 0
    total: int = 0

    @property
    def fraction(self) -> float:
        if self.total <= 0:
            return 1.0 if self.current >= self.total else 0.0
        return min(self.current / self.total, 1.0)

    @property
    def is_complete(self) -> bool:
        return self.current >= self.total

    def to_dict(self) -> Dict[str, int]:
        return {"current": self.current, "total": self.total}


class CancelToken:
    """Cooperative cancellation flag checked between chunks."""

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled by caller") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


UploadFn = Callable[[], Awaitable[Any]]


@dataclass
class ManualOverride:
    """Lets the caller take over after a stuck automatic sync step."""
    path: Optional[str] = None
    upload_fn: Optional[UploadFn] = None

    @property
    def available(self) -> bool:
        return self.path is not None and self.upload_fn is not None


@dataclass
class TransferSession:
    """
    One active download, open or upload.

    Owned by the operation that created it; discarded when that operation,
    or its manual override, completes or is cancelled.
    """
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    progress: Progress = field(default_factory=Progress)
    cancel_token: CancelToken = field(default_factory=CancelToken)
    manual_override: ManualOverride = field(default_factory=ManualOverride)
    sink: Optional["ProgressSink"] = None
    state: Optional[TransferState] = None

    def report(self, current: int, total: int) -> None:
        """Record cumulative progress and publish it."""
        self.progress = Progress(current=current, total=total)
        if self.sink is not None:
            self.sink.publish_progress(self.id, self.progress)

    def emit(self, event: ProgressEvent, **data: Any) -> None:
        if self.sink is not None:
            self.sink.publish_event(self.id, event, data)

    def set_state(self, state: TransferState, **data: Any) -> None:
        self.state = state
        if self.sink is not None:
            self.sink.publish_state(self.id, state, data)

    def cancel(self, reason: str = "cancelled by caller") -> None:
        self.cancel_token.cancel(reason)

    @property
    def cancelled(self) -> bool:
        return self.cancel_token.cancelled
