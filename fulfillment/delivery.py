"""
Notification delivery channel.

Bridges "a notification was just stored for user X" to every live session
(browser tab, device) signed in as X. The transport underneath is a shared
broadcast that may deliver the same notification more than once and may
replay old ones, so each session keeps its own set of notification ids it
already knows and ignores anything in that set.

Per session:
1. On subscribe: load the user's notifications, remember their ids, open
   the transport subscription
2. On each signal: for every notification not seen before, remember its id,
   queue a toast, and put it at the top of the in-memory list
3. On unsubscribe: close the transport subscription and forget the ids

Admin sessions and guest sessions never receive customer notifications.
"""

import logging
from typing import Callable, Iterable, Optional
from uuid import uuid4

from fulfillment.notifications import NotificationRepository
from fulfillment.results import ErrorKind, OperationResult
from fulfillment.toasts import ToastItem, ToastQueue
from storefront.models import Identity, UserNotification
from storefront.providers import PersistenceProvider, ProviderError, Unsubscribe

logger = logging.getLogger("notification_delivery")


class DeliverySession:
    """
    One live session's view of its user's notifications.

    Attributes:
        session_id: Identifies the tab/device
        identity: Who the session is signed in as
        notifications: In-memory list, newest first
        toasts: Transient toast queue for this session only
    """

    def __init__(
        self,
        identity: Identity,
        repository: NotificationRepository,
        provider: PersistenceProvider,
        toasts: Optional[ToastQueue] = None,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or f"session-{uuid4().hex[:8]}"
        self.identity = identity
        self.repository = repository
        self.provider = provider
        self.toasts = toasts if toasts is not None else ToastQueue()
        self.notifications: list[UserNotification] = []
        self._known_ids: set[str] = set()
        self._unsubscribe: Optional[Unsubscribe] = None

    @property
    def receives_notifications(self) -> bool:
        return not (self.identity.is_guest or self.identity.is_admin)

    @property
    def is_open(self) -> bool:
        return self._unsubscribe is not None

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.notifications if not n.is_read)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def open(self) -> None:
        """
        Seed the known ids from the stored list and start listening.

        Raises:
            ProviderError: If the initial list cannot be loaded
        """
        if self.is_open:
            return
        if not self.receives_notifications:
            logger.info(f"{self.session_id}: no notification feed for {self.identity.role} {self.identity.user_id}")
            return

        user_id = self.identity.user_id
        self.notifications = await self.repository.list(user_id)
        self._known_ids = {n.id for n in self.notifications}
        self._unsubscribe = self.provider.subscribe_to_notifications(user_id, self._on_signal)
        logger.info(f"{self.session_id}: subscribed for {user_id} with {len(self._known_ids)} known notification(s)")

    def close(self) -> None:
        """Stop listening. Safe to call at any time, any number of times."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            logger.info(f"{self.session_id}: unsubscribed")
        self._known_ids = set()

    # =========================================================================
    # Delivery
    # =========================================================================

    def _on_signal(self, notification: UserNotification) -> None:
        self.receive([notification])

    def receive(self, batch: Iterable[UserNotification]) -> list[UserNotification]:
        """
        Deliver a batch of candidate notifications to this session.

        Candidates already known, or owned by someone else, are skipped.
        New ones are handled in arrival order.

        Returns:
            The notifications that were new to this session
        """
        if not self.receives_notifications or not self.is_open:
            return []

        delivered = []
        for notification in batch:
            if notification.user_id != self.identity.user_id:
                logger.warning(
                    f"{self.session_id}: dropped notification {notification.id} "
                    f"owned by {notification.user_id}"
                )
                continue
            if notification.id in self._known_ids:
                logger.debug(f"{self.session_id}: duplicate delivery of {notification.id} ignored")
                continue

            self._known_ids.add(notification.id)
            self.toasts.enqueue(ToastItem.from_notification(notification))
            self.notifications.insert(0, notification)
            delivered.append(notification)

        if delivered:
            logger.info(f"{self.session_id}: delivered {len(delivered)} new notification(s)")
        return delivered

    async def refresh(self) -> OperationResult:
        """
        Re-fetch the stored list and deliver anything not seen yet.

        This is the path taken when the transport only says "something
        changed" without carrying the notification itself.
        """
        action = "refresh_notifications"
        if not self.is_open:
            return OperationResult.ok(action, [])
        try:
            candidates = await self.repository.list(self.identity.user_id)
        except ProviderError as e:
            logger.error(f"{self.session_id}: refresh failed: {e}")
            return OperationResult.fail(action, ErrorKind.PROVIDER, str(e))
        # Stored newest first; deliver oldest first so the list ends up newest first
        return OperationResult.ok(action, self.receive(reversed(candidates)))

    # =========================================================================
    # Read state
    # =========================================================================

    async def mark_read(self, notification_id: str) -> OperationResult:
        """Mark one notification read, updating the local list after the store confirms."""
        action = "mark_read"
        if not any(n.id == notification_id for n in self.notifications):
            return OperationResult.fail(action, ErrorKind.NOT_FOUND, f"Notification not found: {notification_id}")
        try:
            await self.repository.mark_read(notification_id)
        except ProviderError as e:
            logger.error(f"{self.session_id}: mark_read {notification_id} failed: {e}")
            return OperationResult.fail(action, ErrorKind.PROVIDER, str(e))

        self.notifications = [
            n.model_copy(update={"is_read": True}) if n.id == notification_id else n
            for n in self.notifications
        ]
        return OperationResult.ok(action)

    async def mark_all_read(self) -> OperationResult:
        action = "mark_all_read"
        if not self.receives_notifications:
            return OperationResult.fail(action, ErrorKind.FORBIDDEN, "This session has no notifications")
        try:
            await self.repository.mark_all_read(self.identity.user_id)
        except ProviderError as e:
            logger.error(f"{self.session_id}: mark_all_read failed: {e}")
            return OperationResult.fail(action, ErrorKind.PROVIDER, str(e))

        self.notifications = [n.model_copy(update={"is_read": True}) for n in self.notifications]
        return OperationResult.ok(action)


class NotificationDeliveryChannel:
    """
    Registry of live sessions and the factory that opens them.

    Example:
        channel = NotificationDeliveryChannel(provider)
        tab = await channel.subscribe(identity)
        ...  # status changes arrive in tab.notifications and tab.toasts
        channel.unsubscribe(tab.session_id)
    """

    def __init__(
        self,
        provider: PersistenceProvider,
        repository: Optional[NotificationRepository] = None,
        toast_factory: Optional[Callable[[], ToastQueue]] = None,
    ):
        """
        Args:
            provider: Source of the subscription transport
            repository: Notification reads and writes (built on provider if None)
            toast_factory: Builds each session's ToastQueue (default settings if None)
        """
        self.provider = provider
        self.repository = repository or NotificationRepository(provider)
        self.toast_factory = toast_factory or ToastQueue
        self.sessions: dict[str, DeliverySession] = {}

    async def subscribe(self, identity: Identity, session_id: Optional[str] = None) -> DeliverySession:
        """
        Open a session for identity.

        Raises:
            ProviderError: If the initial notification list cannot be loaded
        """
        session = DeliverySession(
            identity=identity,
            repository=self.repository,
            provider=self.provider,
            toasts=self.toast_factory(),
            session_id=session_id,
        )
        await session.open()
        self.sessions[session.session_id] = session
        return session

    def unsubscribe(self, session_id: str) -> None:
        """Close and forget a session. Unknown ids are ignored."""
        session = self.sessions.pop(session_id, None)
        if session is not None:
            session.close()

    def sessions_for(self, user_id: str) -> list[DeliverySession]:
        return [s for s in self.sessions.values() if s.identity.user_id == user_id]

    def close_all(self) -> None:
        for session_id in list(self.sessions):
            self.unsubscribe(session_id)
