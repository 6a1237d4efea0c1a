"""
Toast presentation queue.

A session-local, unpersisted list of recently delivered notifications. Each
toast disappears on its own a fixed time after it was queued, or earlier when
dismissed. This is separate from a notification's durable read state:
dismissing a toast does not mark anything read.

Expiry is tracked two ways:
- every item records when it expires on a monotonic clock, and reads drop
  items that are past due
- when an asyncio loop is running, a call_later timer also dismisses the
  item on time, so on_expire fires without anyone reading the queue
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from storefront.config import settings as default_settings
from storefront.models import UserNotification
from storefront.templates import toast_label

logger = logging.getLogger("toasts")


@dataclass
class ToastItem:
    id: str
    message: str
    order_status: str
    label: str
    expires_at: float = 0.0

    @classmethod
    def from_notification(cls, notification: UserNotification) -> "ToastItem":
        return cls(
            id=notification.id,
            message=notification.message,
            order_status=notification.order_status,
            label=toast_label(notification.order_status),
        )


class ToastQueue:
    """
    Ordered toasts for one session.

    Args:
        ttl: Seconds a toast stays up (defaults to TOAST_TTL_SECONDS)
        clock: Monotonic time source, replaceable in tests
        on_expire: Called with each ToastItem that times out
    """

    def __init__(
        self,
        ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        on_expire: Optional[Callable[[ToastItem], None]] = None,
    ):
        self.ttl = default_settings.toast_ttl_seconds if ttl is None else ttl
        self.clock = clock
        self.on_expire = on_expire
        self._items: list[ToastItem] = []
        self._dismissed: set[str] = set()
        self._timers: dict[str, asyncio.TimerHandle] = {}

    def enqueue(self, item: ToastItem) -> bool:
        """
        Append a toast.

        Returns:
            False if a toast with this id is already showing or was dismissed
        """
        self._expire_due()
        if item.id in self._dismissed or any(t.id == item.id for t in self._items):
            logger.debug(f"Toast {item.id} already shown, skipping")
            return False

        item.expires_at = self.clock() + self.ttl
        self._items.append(item)
        self._schedule(item)
        return True

    def dismiss(self, toast_id: str) -> None:
        """Remove a toast by id. Unknown or already removed ids are ignored."""
        if not any(t.id == toast_id for t in self._items):
            return
        self._dismissed.add(toast_id)
        self._items = [t for t in self._items if t.id != toast_id]
        timer = self._timers.pop(toast_id, None)
        if timer is not None:
            timer.cancel()

    def clear(self) -> None:
        for toast_id in [t.id for t in self._items]:
            self.dismiss(toast_id)

    @property
    def items(self) -> list[ToastItem]:
        self._expire_due()
        return list(self._items)

    def __len__(self) -> int:
        return len(self.items)

    def __contains__(self, toast_id: str) -> bool:
        return any(t.id == toast_id for t in self.items)

    # =========================================================================
    # Expiry
    # =========================================================================

    def _schedule(self, item: ToastItem) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._timers[item.id] = loop.call_later(self.ttl, self._expire, item.id)

    def _expire(self, toast_id: str) -> None:
        self._timers.pop(toast_id, None)
        item = next((t for t in self._items if t.id == toast_id), None)
        if item is None:
            return
        self.dismiss(toast_id)
        logger.debug(f"Toast {toast_id} expired")
        if self.on_expire:
            self.on_expire(item)

    def _expire_due(self) -> None:
        now = self.clock()
        for item in [t for t in self._items if t.expires_at <= now]:
            self._expire(item.id)
