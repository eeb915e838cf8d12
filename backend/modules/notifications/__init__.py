"""
Notifications module.

Fans out "journey changed" events to the realtime socket server.

Public API:
- INotifier: Interface for journey change notifications
- SocketNotifier: httpx-backed notifier with retries and coalescing
- NullNotifier: Notifier that drops every event
"""

from .interfaces import INotifier
from .service import SocketNotifier, NullNotifier

__all__ = [
    "INotifier",
    "SocketNotifier",
    "NullNotifier",
]
