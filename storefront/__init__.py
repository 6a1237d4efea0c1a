"""
Shared infrastructure for the bakery order engine.

This package contains:
- Domain models (Product, Order, UserNotification, etc.)
- Customer-facing status message templates
- The persistence provider contract and its implementations
- The broadcast signal bus used as the notification transport
- Runtime configuration
"""

from storefront.models import (
    GUEST_USER_ID,
    CartLineItem,
    CustomDetails,
    DeliveryMethod,
    Identity,
    Ingredient,
    Order,
    OrderStatus,
    PaymentMethod,
    Product,
    ProductCategory,
    UserNotification,
    UserProfile,
    UserRole,
)
from storefront.providers import InMemoryProvider, PersistenceProvider, ProviderError
from storefront.data_store import DataStore, create_provider

__all__ = [
    "GUEST_USER_ID",
    "CartLineItem",
    "CustomDetails",
    "DeliveryMethod",
    "Identity",
    "Ingredient",
    "Order",
    "OrderStatus",
    "PaymentMethod",
    "Product",
    "ProductCategory",
    "UserNotification",
    "UserProfile",
    "UserRole",
    "InMemoryProvider",
    "PersistenceProvider",
    "ProviderError",
    "DataStore",
    "create_provider",
]
