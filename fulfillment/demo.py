"""
Demonstration scripts for the order lifecycle engine.

Run them to see stock move, orders change status, and notifications reach
live sessions as toasts.
"""

import asyncio
import logging

from fulfillment.cart import Cart
from fulfillment.ordering import CheckoutDetails
from fulfillment.service import BakeryService
from storefront.config import settings
from storefront.models import DeliveryMethod, Identity, OrderStatus, PaymentMethod, Product, ProductCategory
from storefront.providers import InMemoryProvider

# Configure logging to see what's happening
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s",
    datefmt="%H:%M:%S",
)

ALICE = Identity(user_id="cust-001", name="Alice Reyes", email="alice@example.com")
CATALOG = [
    Product(id="p1", name="Classic Brookies", price=180, category=ProductCategory.COOKIES, stock=20),
    Product(id="p3", name="Chocolate Moist Cake", price=450, category=ProductCategory.CAKES, stock=5),
    Product(id="p4", name="Red Velvet Crinkles", price=120, category=ProductCategory.COOKIES, stock=0),
]


def _banner(title: str) -> None:
    print("\n" + "=" * 70)
    print(title)
    print("=" * 70 + "\n")


async def _lifecycle() -> None:
    service = BakeryService(InMemoryProvider(products=CATALOG))
    tab = await service.delivery.subscribe(ALICE)

    cart = Cart()
    products = {p.id: p for p in await service.inventory.list_products()}
    cart.add(products["p1"])
    cart.add(products["p1"])
    cart.add(products["p3"])
    print(f"Adding sold-out {products['p4'].name}: accepted={cart.add(products['p4'])}")

    result = await service.orders.place_order(
        ALICE,
        cart,
        CheckoutDetails(
            payment_method=PaymentMethod.GCASH,
            delivery_method=DeliveryMethod.PICKUP,
            scheduled_date="2026-10-24",
            scheduled_time="10:00",
        ),
    )
    print(f"Checkout: {result}")
    order = result.value

    for status in (OrderStatus.CONFIRMED, OrderStatus.BAKING, OrderStatus.COMPLETED):
        print(f"Owner moves {order.id} to {status.value}: {await service.orders.update_order_status(order.id, status)}")

    print("\nToasts on Alice's tab:")
    for toast in tab.toasts.items:
        print(f"  [{toast.label}] {toast.message}")
    print(f"Unread notifications: {tab.unread_count}")

    stock = {p.id: p.stock for p in await service.inventory.list_products()}
    print(f"Stock after checkout: {stock}")
    service.delivery.close_all()


async def _two_tabs() -> None:
    provider = InMemoryProvider(products=CATALOG)
    service = BakeryService(provider)
    laptop = await service.delivery.subscribe(ALICE, session_id="laptop")
    phone = await service.delivery.subscribe(ALICE, session_id="phone")

    inquiry = await service.orders.submit_custom_inquiry(
        {"size": "8-inch round", "notes": "Unicorn theme", "desired_date": "2026-11-02"},
        identity=ALICE,
    )
    await service.orders.set_quote_price(inquiry.value.id, 1450)
    await service.orders.update_order_status(inquiry.value.id, OrderStatus.CONFIRMED)

    print("Transport replays every signal it ever sent...")
    provider.signals.replay()

    for tab in (laptop, phone):
        print(f"  {tab.session_id}: {len(tab.toasts)} toast(s), {len(tab.notifications)} notification(s)")
    service.delivery.close_all()


def run_lifecycle_demo():
    """
    Demonstrate checkout and the full status lifecycle.

    This shows:
    1. Sold-out products are refused by the cart
    2. Checkout takes stock off and stores a PENDING order
    3. Each status change stores one notification and raises one toast
    """
    _banner("DEMO: Checkout and order lifecycle")
    asyncio.run(_lifecycle())


def run_two_tabs_demo():
    """
    Demonstrate delivery to two sessions of the same customer.

    Each tab shows the notification once, even after the transport replays
    its whole log.
    """
    _banner("DEMO: Two tabs, one notification, replayed transport")
    asyncio.run(_two_tabs())


if __name__ == "__main__":
    run_lifecycle_demo()
    run_two_tabs_demo()
