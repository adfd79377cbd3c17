"""
OAuth flows and token lifecycle.
"""

from .base import Authenticator
from .google import GoogleTokenManager
from .loopback import LoopbackListener
from .notifications import LoggingNotifier, Notifier, RecordingNotifier

__all__ = [
    "Authenticator",
    "GoogleTokenManager",
    "LoopbackListener",
    "LoggingNotifier",
    "Notifier",
    "RecordingNotifier",
]
