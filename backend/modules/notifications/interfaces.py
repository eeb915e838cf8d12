"""
Notifications module interface.

Business logic only needs to say "journey X changed"; how connected
clients hear about it is the notifier's concern.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class INotifier(Protocol):
    """
    Interface for journey change notifications.

    Implementations must be best-effort: notify_journey_update never
    raises because of transport problems and never blocks the caller on
    network I/O.
    """

    async def notify_journey_update(self, journey_id: str) -> None:
        """Announce that a journey's state changed."""
        ...
