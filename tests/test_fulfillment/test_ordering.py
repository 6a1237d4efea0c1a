"""
Tests for the order store.

These tests verify checkout, custom inquiries, status transitions with their
notification side effect, and quotes.
"""

import asyncio
import re

import pytest

from fulfillment.cart import Cart
from fulfillment.ordering import (
    INQUIRY_PREFIX,
    ORDER_ID_MAX_RETRIES,
    OrderStore,
    can_transition,
    generate_order_id,
)
from fulfillment.results import ErrorKind
from storefront.models import OrderStatus
from storefront.providers import InMemoryProvider


ORDER_ID_PATTERN = re.compile(r"^(ORD|INQ)-[A-Z0-9]{6}$")


@pytest.fixture
def store(provider) -> OrderStore:
    return OrderStore(provider, strict_transitions=True)


def cart_with(*lines) -> Cart:
    """Build a cart from (product, quantity) pairs."""
    cart = Cart()
    for product, quantity in lines:
        cart.add(product)
        cart.update_quantity(product, quantity)
    return cart


# =============================================================================
# Ids and state machine
# =============================================================================

class TestOrderIds:
    """Tests for generate_order_id."""

    def test_format(self):
        assert ORDER_ID_PATTERN.match(generate_order_id("ORD-", set()))
        assert generate_order_id(INQUIRY_PREFIX, set()).startswith("INQ-")

    def test_collisions_exhaust_retries(self, monkeypatch):
        monkeypatch.setattr("fulfillment.ordering.secrets.choice", lambda alphabet: "A")

        with pytest.raises(RuntimeError, match=str(ORDER_ID_MAX_RETRIES)):
            generate_order_id("ORD-", {"ORD-AAAAAA"})


class TestTransitions:
    @pytest.mark.parametrize("current,new", [
        ("PENDING", "CONFIRMED"),
        ("CONFIRMED", "BAKING"),
        ("BAKING", "COMPLETED"),
        ("PENDING", "CANCELLED"),
        ("BAKING", "CANCELLED"),
    ])
    def test_allowed(self, current, new):
        assert can_transition(current, new)

    @pytest.mark.parametrize("current,new", [
        ("PENDING", "BAKING"),
        ("COMPLETED", "PENDING"),
        ("CANCELLED", "CONFIRMED"),
        ("BAKING", "CONFIRMED"),
    ])
    def test_rejected(self, current, new):
        assert not can_transition(current, new)


# =============================================================================
# Checkout
# =============================================================================

class TestPlaceOrder:
    """Tests for place_order."""

    def test_creates_pending_order(self, store, provider, products, alice, checkout_details):
        cart = cart_with((products[0], 2), (products[2], 1))

        result = asyncio.run(store.place_order(alice, cart, checkout_details))

        assert result.success
        order = result.value
        assert ORDER_ID_PATTERN.match(order.id)
        assert order.status == OrderStatus.PENDING
        assert order.user_id == "cust-001"
        assert order.customer_name == "Alice Reyes"
        assert order.total_amount == 180 * 2 + 450
        assert [(i.product_id, i.quantity) for i in order.items] == [("p1", 2), ("p3", 1)]
        assert cart.is_empty()
        assert [o.id for o in asyncio.run(provider.get_orders())] == [order.id]

    def test_decrements_stock(self, store, provider, products, alice, checkout_details):
        cart = cart_with((products[2], 2))

        asyncio.run(store.place_order(alice, cart, checkout_details))

        stock = {p.id: p.stock for p in asyncio.run(provider.get_products())}
        assert stock["p3"] == 3
        assert stock["p1"] == 20

    def test_dict_details_accepted(self, store, products, alice):
        cart = cart_with((products[0], 1))
        details = {
            "payment_method": "Cash on Delivery",
            "delivery_method": "Delivery",
            "scheduled_date": "2026-10-25",
            "scheduled_time": "14:00",
        }

        result = asyncio.run(store.place_order(alice, cart, details))

        assert result.success
        assert result.value.delivery_method == "Delivery"

    def test_total_is_a_snapshot(self, store, provider, products, alice, checkout_details):
        """Test that later price edits do not change a placed order."""
        result = asyncio.run(store.place_order(alice, cart_with((products[0], 1)), checkout_details))
        asyncio.run(provider.update_product(products[0].model_copy(update={"price": 999})))

        stored = asyncio.run(store.get_order(result.value.id))
        assert stored.total_amount == 180
        assert stored.items[0].product.price == 180

    def test_guest_forbidden(self, store, products, guest, checkout_details):
        result = asyncio.run(store.place_order(guest, cart_with((products[0], 1)), checkout_details))

        assert result.error_kind == ErrorKind.FORBIDDEN

    def test_empty_cart_rejected(self, store, alice, checkout_details):
        result = asyncio.run(store.place_order(alice, Cart(), checkout_details))

        assert result.error_kind == ErrorKind.VALIDATION

    def test_missing_schedule_rejected(self, store, products, alice):
        cart = cart_with((products[0], 1))
        details = {"payment_method": "GCash", "delivery_method": "Pickup", "scheduled_date": ""}

        result = asyncio.run(store.place_order(alice, cart, details))

        assert result.error_kind == ErrorKind.VALIDATION
        assert len(cart) == 1

    def test_create_failure_reports_taken_stock(self, products, alice, checkout_details):
        """Test that stock already taken is reported, not rolled back."""
        provider = InMemoryProvider(products=products, fail_operations={"create_order"})
        store = OrderStore(provider)
        cart = cart_with((products[0], 2))

        result = asyncio.run(store.place_order(alice, cart, checkout_details))

        assert result.error_kind == ErrorKind.PROVIDER
        assert result.value == {"decremented": ["p1"]}
        assert "p1" in result.error
        assert asyncio.run(provider.get_products())[0].stock == 18
        assert len(cart) == 1


class TestCustomInquiry:
    """Tests for submit_custom_inquiry."""

    def test_signed_in_inquiry(self, store, provider, alice):
        result = asyncio.run(store.submit_custom_inquiry(
            {"size": "8-inch round", "notes": "Unicorn theme", "desired_date": "2026-11-02"},
            identity=alice,
        ))

        order = result.value
        assert result.success
        assert order.id.startswith("INQ-")
        assert order.is_custom_inquiry
        assert order.items == []
        assert order.total_amount == 0
        assert order.status == OrderStatus.PENDING
        assert order.scheduled_time == "TBD"
        assert order.custom_details.size == "8-inch round"
        assert order.user_id == "cust-001"

    def test_inquiry_does_not_touch_stock(self, store, provider, alice):
        before = asyncio.run(provider.get_products())

        asyncio.run(store.submit_custom_inquiry({"size": "6-inch", "desired_date": "2026-11-02"}, identity=alice))

        assert asyncio.run(provider.get_products()) == before

    def test_guest_inquiry_with_name(self, store):
        result = asyncio.run(store.submit_custom_inquiry(
            {"size": "6-inch", "desired_date": "2026-11-02", "name": "Carla", "email": "carla@example.com"},
        ))

        assert result.success
        assert result.value.user_id == "guest"
        assert result.value.customer_name == "Carla"

    def test_guest_inquiry_without_name_rejected(self, store, guest):
        result = asyncio.run(store.submit_custom_inquiry(
            {"size": "6-inch", "desired_date": "2026-11-02"}, identity=guest
        ))

        assert result.error_kind == ErrorKind.VALIDATION


# =============================================================================
# Status updates
# =============================================================================

class TestUpdateOrderStatus:
    """Tests for update_order_status."""

    def test_updates_and_notifies(self, store, provider, make_order):
        asyncio.run(provider.create_order(make_order()))

        result = asyncio.run(store.update_order_status("ORD-AB12CD", OrderStatus.CONFIRMED))

        assert result.success
        assert result.value.status == OrderStatus.CONFIRMED
        notifications = asyncio.run(provider.get_user_notifications("cust-001"))
        assert len(notifications) == 1
        assert notifications[0].order_id == "ORD-AB12CD"
        assert notifications[0].order_status == OrderStatus.CONFIRMED
        assert "#AB12CD" in notifications[0].message

    def test_string_status_accepted(self, store, provider, make_order):
        asyncio.run(provider.create_order(make_order()))

        assert asyncio.run(store.update_order_status("ORD-AB12CD", "CONFIRMED")).success

    def test_unknown_status_rejected(self, store, provider, make_order):
        asyncio.run(provider.create_order(make_order()))

        assert asyncio.run(store.update_order_status("ORD-AB12CD", "SHIPPED")).error_kind == ErrorKind.VALIDATION

    def test_unknown_order_is_noop(self, store, provider):
        result = asyncio.run(store.update_order_status("ORD-ZZZZZZ", OrderStatus.CONFIRMED))

        assert result.error_kind == ErrorKind.NOT_FOUND
        assert asyncio.run(provider.get_orders()) == []
        assert asyncio.run(provider.get_user_notifications("cust-001")) == []

    def test_strict_mode_rejects_backwards_move(self, store, provider, make_order):
        asyncio.run(provider.create_order(make_order(status=OrderStatus.COMPLETED)))

        result = asyncio.run(store.update_order_status("ORD-AB12CD", OrderStatus.PENDING))

        assert result.error_kind == ErrorKind.VALIDATION
        assert asyncio.run(store.get_order("ORD-AB12CD")).status == OrderStatus.COMPLETED

    def test_permissive_mode_allows_any_move(self, provider, make_order):
        store = OrderStore(provider, strict_transitions=False)
        asyncio.run(provider.create_order(make_order(status=OrderStatus.COMPLETED)))

        result = asyncio.run(store.update_order_status("ORD-AB12CD", OrderStatus.PENDING))

        assert result.success
        assert asyncio.run(provider.get_user_notifications("cust-001")) == []

    def test_guest_order_not_notified(self, provider, make_order):
        store = OrderStore(provider, strict_transitions=False)
        asyncio.run(provider.create_order(make_order(user_id="guest", is_custom_inquiry=True)))

        assert asyncio.run(store.update_order_status("ORD-AB12CD", OrderStatus.CONFIRMED)).success
        assert asyncio.run(provider.get_user_notifications("guest")) == []

    def test_notification_failure_is_secondary(self, products, make_order):
        """Test that a failed notification write leaves the status change in place."""
        provider = InMemoryProvider(products=products, fail_operations={"add_user_notification"})
        store = OrderStore(provider)
        asyncio.run(provider.create_order(make_order()))

        result = asyncio.run(store.update_order_status("ORD-AB12CD", OrderStatus.CONFIRMED))

        assert result.success
        assert result.partial
        assert "Notification not stored" in result.secondary_errors[0]
        assert asyncio.run(store.get_order("ORD-AB12CD")).status == OrderStatus.CONFIRMED

    def test_update_failure(self, products, make_order):
        provider = InMemoryProvider(products=products, fail_operations={"update_order"})
        store = OrderStore(provider)
        asyncio.run(provider.create_order(make_order()))

        result = asyncio.run(store.update_order_status("ORD-AB12CD", OrderStatus.CONFIRMED))

        assert result.error_kind == ErrorKind.PROVIDER
        assert asyncio.run(provider.get_user_notifications("cust-001")) == []


class TestSetQuotePrice:
    """Tests for set_quote_price."""

    @pytest.fixture
    def inquiry(self, store, alice):
        return asyncio.run(store.submit_custom_inquiry(
            {"size": "8-inch round", "desired_date": "2026-11-02"}, identity=alice
        )).value

    def test_sets_total_only(self, store, provider, inquiry):
        result = asyncio.run(store.set_quote_price(inquiry.id, 1450))

        assert result.success
        stored = asyncio.run(store.get_order(inquiry.id))
        assert stored.total_amount == 1450
        assert stored.status == OrderStatus.PENDING
        assert asyncio.run(provider.get_user_notifications("cust-001")) == []

    def test_zero_allowed(self, store, inquiry):
        assert asyncio.run(store.set_quote_price(inquiry.id, 0)).success

    def test_negative_rejected(self, store, inquiry):
        result = asyncio.run(store.set_quote_price(inquiry.id, -1))

        assert result.error_kind == ErrorKind.VALIDATION
        assert asyncio.run(store.get_order(inquiry.id)).total_amount == 0

    @pytest.mark.parametrize("amount", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_rejected(self, store, inquiry, amount):
        result = asyncio.run(store.set_quote_price(inquiry.id, amount))

        assert result.error_kind == ErrorKind.VALIDATION
        assert asyncio.run(store.get_order(inquiry.id)).total_amount == 0

    def test_unknown_order(self, store):
        assert asyncio.run(store.set_quote_price("INQ-ZZZZZZ", 100)).error_kind == ErrorKind.NOT_FOUND

    def test_regular_order_rejected(self, store, provider, make_order):
        asyncio.run(provider.create_order(make_order()))

        assert asyncio.run(store.set_quote_price("ORD-AB12CD", 100)).error_kind == ErrorKind.VALIDATION
