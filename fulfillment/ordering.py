"""
Order store: creation, status transitions and quotes.

This service owns every rule about how orders change. Placing an order
takes stock off the inventory ledger; moving an order through its lifecycle
stores a customer notification as a side effect.

Key rules:
- Totals and line items are snapshots taken at checkout
- Only non-PENDING transitions on orders owned by a real user notify
- A notification write that fails never undoes the status change; it is
  reported in the result's secondary_errors
- Nothing is rolled back: a checkout that fails after some stock was taken
  off leaves that stock taken off, and says so in the error
"""

import logging
import math
import secrets
import string
from typing import Optional, Union

from pydantic import BaseModel, Field, ValidationError

from fulfillment.cart import Cart
from fulfillment.inventory import InventoryLedger
from fulfillment.notifications import NotificationRepository, build_status_notification
from fulfillment.results import ErrorKind, OperationResult
from storefront.config import settings as default_settings
from storefront.models import (
    GUEST_USER_ID,
    CustomDetails,
    DeliveryMethod,
    Identity,
    Order,
    OrderStatus,
    PaymentMethod,
)
from storefront.providers import PersistenceProvider, ProviderError

logger = logging.getLogger("ordering_service")


# =============================================================================
# State machine
# =============================================================================

VALID_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.BAKING, OrderStatus.CANCELLED},
    OrderStatus.BAKING: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}

TERMINAL_STATES: set[OrderStatus] = {OrderStatus.COMPLETED, OrderStatus.CANCELLED}


def can_transition(current: str, new: str) -> bool:
    """Check whether the forward-only state machine allows current -> new."""
    return OrderStatus(new) in VALID_TRANSITIONS.get(OrderStatus(current), set())


# =============================================================================
# Order ids
# =============================================================================

ORDER_PREFIX = "ORD-"
INQUIRY_PREFIX = "INQ-"
ORDER_ID_ALPHABET = string.ascii_uppercase + string.digits
ORDER_ID_LENGTH = 6  # 36**6, about 2.2 billion codes per prefix
ORDER_ID_MAX_RETRIES = 5


def generate_order_id(prefix: str, existing_ids: set[str]) -> str:
    """
    Generate a short shareable id such as ORD-AB12CD.

    Candidates that clash with an existing id are regenerated.

    Raises:
        RuntimeError: If no free id was found within ORDER_ID_MAX_RETRIES
    """
    for _ in range(ORDER_ID_MAX_RETRIES):
        candidate = prefix + "".join(secrets.choice(ORDER_ID_ALPHABET) for _ in range(ORDER_ID_LENGTH))
        if candidate not in existing_ids:
            return candidate
    raise RuntimeError(f"Could not generate a unique order id after {ORDER_ID_MAX_RETRIES} attempts")


# =============================================================================
# Inputs
# =============================================================================

class CheckoutDetails(BaseModel):
    """What the customer picks on the checkout screen."""
    payment_method: PaymentMethod
    delivery_method: DeliveryMethod
    scheduled_date: str = Field(..., min_length=1)
    scheduled_time: str = Field(..., min_length=1)
    payment_proof: Optional[str] = None


class InquiryDetails(BaseModel):
    """A custom-cake request. Guests must say who they are."""
    size: str = Field(..., min_length=1)
    notes: str = ""
    desired_date: str = Field(..., min_length=1)
    reference_image: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None


def _validation_message(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(loc) for loc in e['loc'])}: {e['msg']}" for e in error.errors()
    )


class OrderStore:
    """
    The authoritative collection of orders.

    Example:
        store = OrderStore(provider)
        result = await store.place_order(identity, cart, details)
        if result.success:
            await store.update_order_status(result.value.id, OrderStatus.CONFIRMED)
    """

    def __init__(
        self,
        provider: PersistenceProvider,
        inventory: Optional[InventoryLedger] = None,
        notifications: Optional[NotificationRepository] = None,
        strict_transitions: Optional[bool] = None,
    ):
        """
        Initialize the order store.

        Args:
            provider: Where orders live
            inventory: Ledger used at checkout (built on provider if None)
            notifications: Repository for status notifications (built on provider if None)
            strict_transitions: Enforce the forward-only state machine.
                Defaults to the STRICT_TRANSITIONS setting.
        """
        self.provider = provider
        self.inventory = inventory or InventoryLedger(provider)
        self.notifications = notifications or NotificationRepository(provider)
        if strict_transitions is None:
            strict_transitions = default_settings.strict_transitions
        self.strict_transitions = strict_transitions

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_orders(self) -> list[Order]:
        return await self.provider.get_orders()

    async def get_order(self, order_id: str) -> Optional[Order]:
        for order in await self.provider.get_orders():
            if order.id == order_id:
                return order
        return None

    async def orders_for_user(self, user_id: str) -> list[Order]:
        return [o for o in await self.provider.get_orders() if o.user_id == user_id]

    # =========================================================================
    # Creation
    # =========================================================================

    async def place_order(
        self,
        identity: Identity,
        cart: Cart,
        details: Union[CheckoutDetails, dict],
    ) -> OperationResult:
        """
        Turn the cart into a PENDING order.

        Steps, in order:
        1. Take each line's quantity off the product's stock
        2. Total the snapshot lines
        3. Store the order
        4. Empty the cart

        Returns:
            OperationResult whose value is the new Order on success
        """
        action = "place_order"

        if identity.is_guest:
            return OperationResult.fail(action, ErrorKind.FORBIDDEN, "Sign in to place an order")
        if cart.is_empty():
            return OperationResult.fail(action, ErrorKind.VALIDATION, "Cart is empty")
        try:
            details = CheckoutDetails.model_validate(details)
        except ValidationError as e:
            return OperationResult.fail(action, ErrorKind.VALIDATION, _validation_message(e))

        items = cart.snapshot()

        try:
            order_id = generate_order_id(ORDER_PREFIX, {o.id for o in await self.provider.get_orders()})
        except (ProviderError, RuntimeError) as e:
            logger.error(f"Could not allocate an order id: {e}")
            return OperationResult.fail(action, ErrorKind.PROVIDER, str(e))

        decremented: list[str] = []
        for item in items:
            try:
                await self.inventory.decrement_stock(item.product_id, item.quantity)
            except ProviderError as e:
                logger.error(
                    f"Checkout {order_id} stopped at {item.product_id}; "
                    f"stock already taken for {decremented or 'no products'}: {e}"
                )
                return OperationResult.fail(
                    action,
                    ErrorKind.PROVIDER,
                    f"{e} (stock already decremented for: {', '.join(decremented) or 'none'})",
                    value={"decremented": decremented},
                )
            decremented.append(item.product_id)

        order = Order(
            id=order_id,
            user_id=identity.user_id,
            customer_name=identity.name or identity.user_id,
            customer_email=identity.email,
            items=items,
            total_amount=sum(item.subtotal for item in items),
            status=OrderStatus.PENDING,
            payment_method=details.payment_method,
            payment_proof=details.payment_proof,
            delivery_method=details.delivery_method,
            scheduled_date=details.scheduled_date,
            scheduled_time=details.scheduled_time,
        )

        try:
            await self.provider.create_order(order)
        except ProviderError as e:
            logger.error(f"Order {order_id} not stored after stock was taken for {decremented}: {e}")
            return OperationResult.fail(
                action,
                ErrorKind.PROVIDER,
                f"{e} (stock already decremented for: {', '.join(decremented)})",
                value={"decremented": decremented},
            )

        cart.clear()
        logger.info(f"Order {order.id} placed by {identity.user_id}: {len(items)} line(s), total {order.total_amount:.2f}")
        return OperationResult.ok(action, order)

    async def submit_custom_inquiry(
        self,
        details: Union[InquiryDetails, dict],
        identity: Optional[Identity] = None,
    ) -> OperationResult:
        """
        Store a custom-cake inquiry as a PENDING order with no items.

        Guests may submit one if they give a name. Stock is not touched and
        the total stays 0 until the owner sets a quote.
        """
        action = "submit_custom_inquiry"
        identity = identity or Identity.guest()

        try:
            details = InquiryDetails.model_validate(details)
        except ValidationError as e:
            return OperationResult.fail(action, ErrorKind.VALIDATION, _validation_message(e))

        customer_name = identity.name if not identity.is_guest else details.name
        if not customer_name:
            return OperationResult.fail(action, ErrorKind.VALIDATION, "A name is required for guest inquiries")

        try:
            order_id = generate_order_id(INQUIRY_PREFIX, {o.id for o in await self.provider.get_orders()})
            order = Order(
                id=order_id,
                user_id=identity.user_id if not identity.is_guest else GUEST_USER_ID,
                customer_name=customer_name,
                customer_email=identity.email if not identity.is_guest else details.email,
                items=[],
                total_amount=0,
                status=OrderStatus.PENDING,
                payment_method=PaymentMethod.COD,
                delivery_method=DeliveryMethod.PICKUP,
                scheduled_date=details.desired_date,
                scheduled_time="TBD",
                is_custom_inquiry=True,
                custom_details=CustomDetails(
                    size=details.size,
                    notes=details.notes,
                    reference_image=details.reference_image,
                ),
            )
            await self.provider.create_order(order)
        except (ProviderError, RuntimeError) as e:
            logger.error(f"Inquiry from {customer_name} not stored: {e}")
            return OperationResult.fail(action, ErrorKind.PROVIDER, str(e))

        logger.info(f"Inquiry {order.id} submitted by {order.user_id} ({details.size})")
        return OperationResult.ok(action, order)

    # =========================================================================
    # Admin mutations
    # =========================================================================

    async def update_order_status(self, order_id: str, status: Union[OrderStatus, str]) -> OperationResult:
        """
        Move an order to status and notify its owner.

        Unknown orders are left alone. With strict transitions on, moves the
        state machine does not allow are rejected before anything is written.

        Returns:
            OperationResult whose value is the updated Order. A failed
            notification write shows up in secondary_errors.
        """
        action = "update_order_status"
        try:
            new_status = OrderStatus(status)
        except ValueError:
            return OperationResult.fail(action, ErrorKind.VALIDATION, f"Unknown order status: {status}")

        try:
            order = await self.get_order(order_id)
        except ProviderError as e:
            logger.error(f"Could not read order {order_id}: {e}")
            return OperationResult.fail(action, ErrorKind.PROVIDER, str(e))

        if order is None:
            logger.warning(f"Status update ignored for unknown order {order_id}")
            return OperationResult.fail(action, ErrorKind.NOT_FOUND, f"Order not found: {order_id}")

        previous_status = order.status
        if self.strict_transitions and not can_transition(previous_status, new_status):
            logger.warning(f"Rejected transition for {order_id}: {previous_status} -> {new_status.value}")
            return OperationResult.fail(
                action,
                ErrorKind.VALIDATION,
                f"Cannot move order {order_id} from {previous_status} to {new_status.value}",
                value=order,
            )

        updated = order.model_copy(update={"status": new_status.value})
        try:
            await self.provider.update_order(updated)
        except ProviderError as e:
            logger.error(f"Status update for {order_id} failed: {e}")
            return OperationResult.fail(action, ErrorKind.PROVIDER, str(e))

        logger.info(f"Order {order_id}: {previous_status} -> {new_status.value}")
        result = OperationResult.ok(action, updated)

        error = await self._notify_status_change(updated, new_status)
        if error:
            result.secondary_errors.append(error)
        return result

    async def set_quote_price(self, order_id: str, amount: float) -> OperationResult:
        """
        Set the price of a custom inquiry.

        Negative and non-finite amounts are rejected; zero is allowed. Status
        is unchanged and no notification is sent.
        """
        action = "set_quote_price"
        if not math.isfinite(amount) or amount < 0:
            return OperationResult.fail(action, ErrorKind.VALIDATION, f"Quote must be a finite amount >= 0: {amount}")

        try:
            order = await self.get_order(order_id)
            if order is None:
                logger.warning(f"Quote ignored for unknown order {order_id}")
                return OperationResult.fail(action, ErrorKind.NOT_FOUND, f"Order not found: {order_id}")
            if not order.is_custom_inquiry:
                return OperationResult.fail(
                    action, ErrorKind.VALIDATION, f"Order {order_id} is not a custom inquiry"
                )
            updated = order.model_copy(update={"total_amount": amount})
            await self.provider.update_order(updated)
        except ProviderError as e:
            logger.error(f"Quote for {order_id} failed: {e}")
            return OperationResult.fail(action, ErrorKind.PROVIDER, str(e))

        logger.info(f"Quote for {order_id} set to {amount:.2f}")
        return OperationResult.ok(action, updated)

    # =========================================================================
    # Side effects
    # =========================================================================

    async def _notify_status_change(self, order: Order, status: OrderStatus) -> Optional[str]:
        """
        Store the customer notification for a status change.

        Returns:
            An error message if the write failed, None otherwise
        """
        if status == OrderStatus.PENDING or order.is_guest_order:
            return None

        notification = build_status_notification(order.user_id, order.id, status)
        try:
            await self.notifications.add(notification)
        except ProviderError as e:
            logger.error(f"Order {order.id} moved to {status.value} but its notification was not stored: {e}")
            return f"Notification not stored: {e}"
        return None
