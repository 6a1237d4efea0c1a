"""
Customer-facing message templates for order status changes.

Templates use Python's string formatting with {variable} placeholders.
Each status has a notification message (stored durably) and a short label
used when the notification is shown as a toast.

Design decisions:
- Templates are keyed by the status the order moved to
- A default template covers any status without a specific one
- Order ids are shown without their ORD-/INQ- prefix
"""

from dataclasses import dataclass
from typing import Optional

from storefront.models import OrderStatus


ORDER_ID_PREFIXES = ("ORD-", "INQ-")


@dataclass
class StatusTemplate:
    """A notification message and toast label for one order status."""
    status: Optional[OrderStatus]
    message: str
    label: str

    def render(self, **kwargs) -> str:
        return self.message.format(**kwargs)


# =============================================================================
# Template Definitions
# =============================================================================

TEMPLATES: dict[OrderStatus, StatusTemplate] = {
    OrderStatus.CONFIRMED: StatusTemplate(
        status=OrderStatus.CONFIRMED,
        message="Your order #{order_id} has been confirmed! We're getting started.",
        label="Order Confirmed",
    ),
    OrderStatus.BAKING: StatusTemplate(
        status=OrderStatus.BAKING,
        message="Your order #{order_id} is now being baked!",
        label="Now Baking",
    ),
    OrderStatus.COMPLETED: StatusTemplate(
        status=OrderStatus.COMPLETED,
        message="Your order #{order_id} is ready! Come and enjoy.",
        label="Order Ready!",
    ),
    OrderStatus.CANCELLED: StatusTemplate(
        status=OrderStatus.CANCELLED,
        message="Your order #{order_id} has been cancelled. Please contact us for more info.",
        label="Order Cancelled",
    ),
}

DEFAULT_TEMPLATE = StatusTemplate(
    status=None,
    message="Your order #{order_id} status has been updated to {status}.",
    label="Order Update",
)


# =============================================================================
# Template Access Functions
# =============================================================================

def short_display_id(order_id: str) -> str:
    """Strip the ORD-/INQ- prefix so ORD-AB12CD is shown as AB12CD."""
    for prefix in ORDER_ID_PREFIXES:
        if order_id.startswith(prefix):
            return order_id[len(prefix):]
    return order_id


def get_template(status: str) -> StatusTemplate:
    """Get the template for a status, falling back to the default."""
    try:
        return TEMPLATES.get(OrderStatus(status), DEFAULT_TEMPLATE)
    except ValueError:
        return DEFAULT_TEMPLATE


def render_status_message(order_id: str, status: str) -> str:
    """
    Render the notification text for an order that moved to status.

    Args:
        order_id: Full order id (prefix is stripped for display)
        status: The destination status

    Returns:
        The message stored on the UserNotification
    """
    status_value = status.value if isinstance(status, OrderStatus) else status
    return get_template(status).render(
        order_id=short_display_id(order_id),
        status=status_value,
    )


def toast_label(status: str) -> str:
    return get_template(status).label
