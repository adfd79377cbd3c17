"""
Progress channel between the transfer engine and its observers.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

from ..config.constants import DEFAULT_PROGRESS_QUEUE_SIZE
from ..models.transfer import Progress, ProgressEvent, TransferState

logger = logging.getLogger(__name__)


class MessageKind(str, Enum):
    PROGRESS = "progress"
    EVENT = "event"
    STATE = "state"


@dataclass
class ProgressMessage:
    """One item published on the channel."""
    session_id: str
    kind: MessageKind
    progress: Optional[Progress] = None
    event: Optional[ProgressEvent] = None
    state: Optional[TransferState] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "kind": self.kind.value,
            "progress": self.progress.to_dict() if self.progress else None,
            "event": self.event.value if self.event else None,
            "state": self.state.value if self.state else None,
            "data": self.data,
        }


class ProgressSink(ABC):
    """Receives cumulative progress, hand-off events and lifecycle states."""

    @abstractmethod
    def publish_progress(self, session_id: str, progress: Progress) -> None:
        pass

    @abstractmethod
    def publish_event(self, session_id: str, event: ProgressEvent, data: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def publish_state(self, session_id: str, state: TransferState, data: Dict[str, Any]) -> None:
        pass


class NullProgressSink(ProgressSink):
    """Discards everything."""

    def publish_progress(self, session_id: str, progress: Progress) -> None:
        pass

    def publish_event(self, session_id: str, event: ProgressEvent, data: Dict[str, Any]) -> None:
        pass

    def publish_state(self, session_id: str, state: TransferState, data: Dict[str, Any]) -> None:
        pass


class CallbackProgressSink(ProgressSink):
    """Forwards every message to a plain callback."""

    def __init__(self, callback: Callable[[ProgressMessage], Any]):
        self.callback = callback

    def publish_progress(self, session_id: str, progress: Progress) -> None:
        self.callback(ProgressMessage(session_id, MessageKind.PROGRESS, progress=progress))

    def publish_event(self, session_id: str, event: ProgressEvent, data: Dict[str, Any]) -> None:
        self.callback(ProgressMessage(session_id, MessageKind.EVENT, event=event, data=dict(data)))

    def publish_state(self, session_id: str, state: TransferState, data: Dict[str, Any]) -> None:
        self.callback(ProgressMessage(session_id, MessageKind.STATE, state=state, data=dict(data)))


class QueueProgressSink(ProgressSink):
    """
    Bounded channel read by an async consumer.

    Publishing never blocks the transfer. When the channel is full the
    oldest pending progress tick is dropped; events and states are always
    delivered, even past the bound.
    """

    def __init__(self, max_size: int = DEFAULT_PROGRESS_QUEUE_SIZE):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self.dropped = 0
        self._messages: Deque[ProgressMessage] = deque()
        self._ready = asyncio.Event()

    def __len__(self) -> int:
        return len(self._messages)

    def publish_progress(self, session_id: str, progress: Progress) -> None:
        self._put(ProgressMessage(session_id, MessageKind.PROGRESS, progress=progress))

    def publish_event(self, session_id: str, event: ProgressEvent, data: Dict[str, Any]) -> None:
        self._put(ProgressMessage(session_id, MessageKind.EVENT, event=event, data=dict(data)))

    def publish_state(self, session_id: str, state: TransferState, data: Dict[str, Any]) -> None:
        self._put(ProgressMessage(session_id, MessageKind.STATE, state=state, data=dict(data)))

    async def get(self) -> ProgressMessage:
        """Wait for the next message."""
        while not self._messages:
            self._ready.clear()
            await self._ready.wait()
        return self._messages.popleft()

    def get_nowait(self) -> Optional[ProgressMessage]:
        if not self._messages:
            return None
        return self._messages.popleft()

    def drain(self) -> List[ProgressMessage]:
        """Take every pending message."""
        messages = list(self._messages)
        self._messages.clear()
        return messages

    def _put(self, message: ProgressMessage) -> None:
        if len(self._messages) >= self.max_size:
            for index, pending in enumerate(self._messages):
                if pending.kind == MessageKind.PROGRESS:
                    del self._messages[index]
                    self.dropped += 1
                    break
            else:
                if message.kind == MessageKind.PROGRESS:
                    self.dropped += 1
                    logger.debug(f"Progress channel full of events, dropped tick for {message.session_id}")
                    return

        self._messages.append(message)
        self._ready.set()
