"""
Notification repository: durable, per-user notification records.

A thin layer over the provider that keeps the ordering and read-state rules
in one place. Provider failures propagate as ProviderError; callers turn them
into OperationResults.
"""

import logging
from typing import Optional
from uuid import uuid4

from storefront.models import GUEST_USER_ID, OrderStatus, UserNotification
from storefront.providers import PersistenceProvider
from storefront.templates import render_status_message

logger = logging.getLogger("notification_repository")


def build_status_notification(user_id: str, order_id: str, status: str) -> UserNotification:
    """Create (but do not store) the notification for an order moving to status."""
    return UserNotification(
        id=f"notif-{uuid4().hex[:12]}",
        user_id=user_id,
        message=render_status_message(order_id, status),
        order_id=order_id,
        order_status=OrderStatus(status),
    )


class NotificationRepository:
    def __init__(self, provider: PersistenceProvider):
        self.provider = provider

    async def list(self, user_id: str) -> list[UserNotification]:
        """All notifications for user_id, newest first, read and unread."""
        notifications = await self.provider.get_user_notifications(user_id)
        return sorted(notifications, key=lambda n: n.created_at, reverse=True)

    async def add(self, notification: UserNotification) -> UserNotification:
        if notification.user_id == GUEST_USER_ID:
            raise ValueError("Notifications cannot be owned by the guest user")
        await self.provider.add_user_notification(notification)
        logger.info(
            f"Stored notification {notification.id} for {notification.user_id} "
            f"(order={notification.order_id}, status={notification.order_status})"
        )
        return notification

    async def mark_read(self, notification_id: str) -> None:
        """Mark one notification read. Already-read ids are left alone."""
        await self.provider.mark_notification_read(notification_id)

    async def mark_all_read(self, user_id: str) -> None:
        await self.provider.mark_all_notifications_read(user_id)
        logger.info(f"Marked all notifications read for {user_id}")

    async def unread_count(self, user_id: str) -> int:
        return sum(1 for n in await self.list(user_id) if not n.is_read)

    async def get(self, user_id: str, notification_id: str) -> Optional[UserNotification]:
        for notification in await self.list(user_id):
            if notification.id == notification_id:
                return notification
        return None
