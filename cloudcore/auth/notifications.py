"""
User notification collaborator.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Tuple

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Surfaces authentication problems to the user (OS notifications)."""

    @abstractmethod
    async def notify(self, title: str, body: str) -> None:
        pass


class LoggingNotifier(Notifier):
    """Default notifier: writes the notification to the log."""

    async def notify(self, title: str, body: str) -> None:
        logger.warning(f"{title}: {body}")


class RecordingNotifier(Notifier):
    """Keeps notifications in memory, for embedding UIs that poll them."""

    def __init__(self):
        self.notifications: List[Tuple[str, str]] = []

    async def notify(self, title: str, body: str) -> None:
        self.notifications.append((title, body))
