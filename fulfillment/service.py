"""
The bakery engine, wired together.

BakeryService is built explicitly from a provider and handed to whatever
needs it (the HTTP app, the demo, tests). Nothing in the engine reaches for
a global instance.
"""

import logging
from functools import partial
from typing import Optional

from fulfillment.delivery import NotificationDeliveryChannel
from fulfillment.inventory import InventoryLedger
from fulfillment.notifications import NotificationRepository
from fulfillment.ordering import OrderStore
from fulfillment.toasts import ToastQueue
from storefront.config import Settings, settings as default_settings
from storefront.data_store import create_provider
from storefront.providers import PersistenceProvider

logger = logging.getLogger("bakery_service")


class BakeryService:
    """
    Order, inventory and notification state behind one object.

    Attributes:
        provider: The persistence backend
        inventory: Stock ledger
        notifications: Durable notification records
        orders: Order lifecycle rules
        delivery: Live session registry and notification fan-out
    """

    def __init__(self, provider: PersistenceProvider, config: Optional[Settings] = None):
        config = config or default_settings
        self.config = config
        self.provider = provider
        self.inventory = InventoryLedger(provider)
        self.notifications = NotificationRepository(provider)
        self.orders = OrderStore(
            provider,
            inventory=self.inventory,
            notifications=self.notifications,
            strict_transitions=config.strict_transitions,
        )
        self.delivery = NotificationDeliveryChannel(
            provider,
            repository=self.notifications,
            toast_factory=partial(ToastQueue, ttl=config.toast_ttl_seconds),
        )

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "BakeryService":
        config = config or default_settings
        return cls(create_provider(config), config)
