"""
The order lifecycle and notification delivery engine.

- Inventory: stock taken off at checkout and edited by the owner
- Ordering: checkout, custom inquiries, status transitions, quotes
- Notifications: durable per-user records with read state
- Delivery: deduplicated fan-out of new notifications to live sessions
- Toasts: transient, auto-expiring presentation per session
"""

from fulfillment.cart import Cart
from fulfillment.delivery import DeliverySession, NotificationDeliveryChannel
from fulfillment.inventory import InventoryLedger
from fulfillment.notifications import NotificationRepository
from fulfillment.ordering import CheckoutDetails, InquiryDetails, OrderStore
from fulfillment.results import ErrorKind, OperationResult
from fulfillment.service import BakeryService
from fulfillment.toasts import ToastItem, ToastQueue

__all__ = [
    "Cart",
    "DeliverySession",
    "NotificationDeliveryChannel",
    "InventoryLedger",
    "NotificationRepository",
    "CheckoutDetails",
    "InquiryDetails",
    "OrderStore",
    "ErrorKind",
    "OperationResult",
    "BakeryService",
    "ToastItem",
    "ToastQueue",
]
