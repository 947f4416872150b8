"""Notification interface (port) - defines how users are notified."""

from abc import ABC, abstractmethod
from uuid import UUID


class Notifier(ABC):
    """Abstract interface for delivering a notification to a user."""

    @abstractmethod
    async def notify_user(
        self,
        user_id: UUID,
        title: str,
        body: str,
        metadata: dict | None = None,
    ) -> bool:
        """Deliver a notification.

        Delivery failures are reported through the return value, never
        raised.

        Returns:
            True if at least one device accepted the message.
        """
        ...
