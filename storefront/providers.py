"""
Persistence provider contract and the in-memory implementation.

The engine only talks to a PersistenceProvider. Which concrete provider is
used (in-memory, JSON files on disk, a remote database) is decided once at
startup by create_provider() in storefront.data_store.

Design decisions:
- Every data method is async, because a real backend is remote
- Records are copied in and out, so callers always read, compute and write
  whole records (last writer wins)
- Updating or deleting an unknown record is a no-op, not an error
- New notifications are announced on a SignalBus; the signal carries no
  filtering of its own beyond the per-user wrapper installed by subscribe
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterable, Optional

from storefront.models import (
    Ingredient,
    Order,
    Product,
    UserNotification,
    UserProfile,
)
from storefront.signals import Signal, SignalBus, SignalTypes

logger = logging.getLogger("provider")


NotificationCallback = Callable[[UserNotification], None]
Unsubscribe = Callable[[], None]


class ProviderError(Exception):
    """A persistence or transport call failed or the backend is unreachable."""

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation}: {message}")
        self.operation = operation


class PersistenceProvider(ABC):
    """
    Contract every storage backend must fulfill.

    To switch backends, implement this class and return it from
    create_provider(). Nothing else in the engine needs to change.
    """

    # Products
    @abstractmethod
    async def get_products(self) -> list[Product]: ...

    @abstractmethod
    async def add_product(self, product: Product) -> Product: ...

    @abstractmethod
    async def update_product(self, product: Product) -> Product: ...

    @abstractmethod
    async def delete_product(self, product_id: str) -> None: ...

    # Ingredients
    @abstractmethod
    async def get_ingredients(self) -> list[Ingredient]: ...

    @abstractmethod
    async def update_ingredient(self, ingredient: Ingredient) -> Ingredient: ...

    # Orders
    @abstractmethod
    async def get_orders(self) -> list[Order]: ...

    @abstractmethod
    async def create_order(self, order: Order) -> Order: ...

    @abstractmethod
    async def update_order(self, order: Order) -> Order: ...

    # Users
    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[UserProfile]: ...

    @abstractmethod
    async def update_user(self, user: UserProfile) -> UserProfile: ...

    # Notifications
    @abstractmethod
    async def get_user_notifications(self, user_id: str) -> list[UserNotification]: ...

    @abstractmethod
    async def add_user_notification(self, notification: UserNotification) -> None: ...

    @abstractmethod
    async def mark_notification_read(self, notification_id: str) -> None: ...

    @abstractmethod
    async def mark_all_notifications_read(self, user_id: str) -> None: ...

    @abstractmethod
    def subscribe_to_notifications(self, user_id: str, on_new: NotificationCallback) -> Unsubscribe:
        """
        Call on_new for every notification persisted for user_id.

        Delivery may repeat old notifications. The returned callable closes
        the subscription and may be called any number of times.
        """


class InMemoryProvider(PersistenceProvider):
    """
    Dict-backed provider for tests, demos and single-process use.

    Args:
        products: Initial catalog
        ingredients: Initial supplies
        users: Initial user profiles
        signal_bus: Transport for new-notification signals (new bus if None)
        latency: Seconds every call waits before running, to simulate a network
        fail_operations: Names of methods that raise ProviderError, for testing
    """

    def __init__(
        self,
        products: Optional[Iterable[Product]] = None,
        ingredients: Optional[Iterable[Ingredient]] = None,
        users: Optional[Iterable[UserProfile]] = None,
        signal_bus: Optional[SignalBus] = None,
        latency: float = 0.0,
        fail_operations: Optional[Iterable[str]] = None,
    ):
        self.signals = signal_bus or SignalBus()
        self.latency = latency
        self.fail_operations: set[str] = set(fail_operations or ())

        self._products: dict[str, Product] = {p.id: p for p in products or []}
        self._ingredients: dict[str, Ingredient] = {i.id: i for i in ingredients or []}
        self._users: dict[str, UserProfile] = {u.id: u for u in users or []}
        # Newest first, like the order history screen
        self._orders: dict[str, Order] = {}
        # Insertion order is kept so ties on created_at list newest-added first
        self._notifications: dict[str, UserNotification] = {}

    # =========================================================================
    # Hooks
    # =========================================================================

    async def _enter(self, operation: str) -> None:
        if self.latency:
            await asyncio.sleep(self.latency)
        if operation in self.fail_operations:
            logger.error(f"[PROVIDER FAILED] {operation}")
            raise ProviderError(operation, "Simulated provider failure")
        self._ensure_loaded()

    def _ensure_loaded(self) -> None:
        """Load backing storage on first use. Nothing to load in memory."""

    def _persist(self, collection: str) -> None:
        """Write a collection to backing storage. Nothing to write in memory."""

    # =========================================================================
    # Products
    # =========================================================================

    async def get_products(self) -> list[Product]:
        await self._enter("get_products")
        return [p.model_copy(deep=True) for p in self._products.values()]

    async def add_product(self, product: Product) -> Product:
        await self._enter("add_product")
        self._products[product.id] = product.model_copy(deep=True)
        self._persist("products")
        return product

    async def update_product(self, product: Product) -> Product:
        await self._enter("update_product")
        if product.id in self._products:
            self._products[product.id] = product.model_copy(deep=True)
            self._persist("products")
        return product

    async def delete_product(self, product_id: str) -> None:
        await self._enter("delete_product")
        if self._products.pop(product_id, None) is not None:
            self._persist("products")

    # =========================================================================
    # Ingredients
    # =========================================================================

    async def get_ingredients(self) -> list[Ingredient]:
        await self._enter("get_ingredients")
        return [i.model_copy(deep=True) for i in self._ingredients.values()]

    async def update_ingredient(self, ingredient: Ingredient) -> Ingredient:
        await self._enter("update_ingredient")
        if ingredient.id in self._ingredients:
            self._ingredients[ingredient.id] = ingredient.model_copy(deep=True)
            self._persist("ingredients")
        return ingredient

    # =========================================================================
    # Orders
    # =========================================================================

    async def get_orders(self) -> list[Order]:
        await self._enter("get_orders")
        return [o.model_copy(deep=True) for o in self._orders.values()]

    async def create_order(self, order: Order) -> Order:
        await self._enter("create_order")
        self._orders = {order.id: order.model_copy(deep=True), **self._orders}
        self._persist("orders")
        return order

    async def update_order(self, order: Order) -> Order:
        await self._enter("update_order")
        if order.id in self._orders:
            self._orders[order.id] = order.model_copy(deep=True)
            self._persist("orders")
        return order

    # =========================================================================
    # Users
    # =========================================================================

    async def get_user(self, user_id: str) -> Optional[UserProfile]:
        await self._enter("get_user")
        user = self._users.get(user_id)
        return user.model_copy() if user else None

    async def update_user(self, user: UserProfile) -> UserProfile:
        await self._enter("update_user")
        self._users[user.id] = user.model_copy()
        self._persist("users")
        return user

    # =========================================================================
    # Notifications
    # =========================================================================

    async def get_user_notifications(self, user_id: str) -> list[UserNotification]:
        await self._enter("get_user_notifications")
        owned = [n for n in reversed(self._notifications.values()) if n.user_id == user_id]
        # Stable sort keeps the newest-added first among equal timestamps
        owned.sort(key=lambda n: n.created_at, reverse=True)
        return [n.model_copy() for n in owned]

    async def add_user_notification(self, notification: UserNotification) -> None:
        await self._enter("add_user_notification")
        self._notifications[notification.id] = notification.model_copy()
        self._persist("notifications")
        self.signals.publish(Signal(
            signal_type=SignalTypes.NOTIFICATION_ADDED,
            source=type(self).__name__,
            payload={
                "user_id": notification.user_id,
                "notification": notification.model_dump(),
            },
        ))

    async def mark_notification_read(self, notification_id: str) -> None:
        await self._enter("mark_notification_read")
        existing = self._notifications.get(notification_id)
        if existing is None or existing.is_read:
            return
        self._notifications[notification_id] = existing.model_copy(update={"is_read": True})
        self._persist("notifications")

    async def mark_all_notifications_read(self, user_id: str) -> None:
        await self._enter("mark_all_notifications_read")
        # Built in full before swapping in, so no reader sees a partial update
        updated = {
            nid: (n.model_copy(update={"is_read": True}) if n.user_id == user_id and not n.is_read else n)
            for nid, n in self._notifications.items()
        }
        self._notifications = updated
        self._persist("notifications")

    def subscribe_to_notifications(self, user_id: str, on_new: NotificationCallback) -> Unsubscribe:
        def handler(signal: Signal) -> None:
            if signal.payload.get("user_id") != user_id:
                return
            on_new(UserNotification.model_validate(signal.payload["notification"]))

        self.signals.subscribe(SignalTypes.NOTIFICATION_ADDED, handler)
        closed = False

        def unsubscribe() -> None:
            nonlocal closed
            if closed:
                return
            closed = True
            self.signals.unsubscribe(SignalTypes.NOTIFICATION_ADDED, handler)

        return unsubscribe
