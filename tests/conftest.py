"""
Shared pytest fixtures for the bakery order engine tests.

These fixtures provide a small catalog, a few identities and fresh
providers/services so tests don't interfere with each other.
"""

import pytest
from pathlib import Path

from fulfillment.ordering import CheckoutDetails
from fulfillment.service import BakeryService
from storefront.config import Settings
from storefront.models import (
    DeliveryMethod,
    Identity,
    Ingredient,
    Order,
    PaymentMethod,
    Product,
    ProductCategory,
    UserRole,
)
from storefront.providers import InMemoryProvider


@pytest.fixture
def data_dir() -> Path:
    """Path to the bundled seed data."""
    return Path(__file__).parent.parent / "data"


# =============================================================================
# Catalog Fixtures
# =============================================================================

@pytest.fixture
def products() -> list[Product]:
    """
    Small catalog.

    p1 Brookies (stock 20), p2 Banana Loaf (stock 5),
    p3 Chocolate Cake (stock 5), p4 Crinkles (sold out).
    """
    return [
        Product(id="p1", name="Classic Brookies", price=180, category=ProductCategory.COOKIES, stock=20),
        Product(id="p2", name="Banana Loaf", price=150, category=ProductCategory.PASTRIES, stock=5),
        Product(id="p3", name="Chocolate Moist Cake", price=450, category=ProductCategory.CAKES, stock=5),
        Product(id="p4", name="Red Velvet Crinkles", price=120, category=ProductCategory.COOKIES, stock=0),
    ]


@pytest.fixture
def ingredients() -> list[Ingredient]:
    return [
        Ingredient(id="i1", name="Flour", unit="kg", quantity=50, threshold=10),
        Ingredient(id="i3", name="Eggs", unit="tray", quantity=2, threshold=2),
    ]


@pytest.fixture
def provider(products, ingredients) -> InMemoryProvider:
    """Fresh in-memory provider for each test."""
    return InMemoryProvider(products=products, ingredients=ingredients)


@pytest.fixture
def config() -> Settings:
    return Settings(toast_ttl_seconds=5.5, strict_transitions=True)


@pytest.fixture
def service(provider, config) -> BakeryService:
    return BakeryService(provider, config)


# =============================================================================
# Identity Fixtures
# =============================================================================

@pytest.fixture
def alice() -> Identity:
    """Signed-in customer with past orders."""
    return Identity(user_id="cust-001", name="Alice Reyes", email="alice@example.com")


@pytest.fixture
def bob() -> Identity:
    """Another signed-in customer."""
    return Identity(user_id="cust-002", name="Bob Santos", email="bob@example.com")


@pytest.fixture
def admin() -> Identity:
    """The shop owner."""
    return Identity(user_id="admin-001", name="Iyah (Owner)", email="admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
def guest() -> Identity:
    return Identity.guest()


# =============================================================================
# Order Fixtures
# =============================================================================

@pytest.fixture
def checkout_details() -> CheckoutDetails:
    return CheckoutDetails(
        payment_method=PaymentMethod.GCASH,
        delivery_method=DeliveryMethod.PICKUP,
        scheduled_date="2026-10-24",
        scheduled_time="10:00",
    )


@pytest.fixture
def make_order():
    """Build a stored-order record with a fixed id."""
    def _make(order_id: str = "ORD-AB12CD", user_id: str = "cust-001", **overrides) -> Order:
        fields = {
            "id": order_id,
            "user_id": user_id,
            "customer_name": "Alice Reyes",
            "total_amount": 360,
            "scheduled_date": "2026-10-24",
            "scheduled_time": "10:00",
        }
        fields.update(overrides)
        return Order(**fields)
    return _make


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
