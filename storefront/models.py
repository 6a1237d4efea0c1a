"""
Domain models for the bakery storefront.

These models describe the records that the persistence provider stores and
the order lifecycle engine mutates.

Design decisions:
- Using Pydantic for validation and serialization
- Order totals and line items are snapshots taken at placement time
- Notifications are owned by a user id; orders only back-reference them
- Enum fields are stored by value so records round-trip through JSON
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


# Sentinel owner for orders and inquiries placed without an account
GUEST_USER_ID = "guest"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Enums - Status values used across the domain
# =============================================================================

class OrderStatus(str, Enum):
    """
    Order fulfillment states.

    Forward path is PENDING -> CONFIRMED -> BAKING -> COMPLETED, and any
    non-terminal state may move to CANCELLED.
    """
    PENDING = "PENDING"           # Placed, waiting for the owner
    CONFIRMED = "CONFIRMED"       # Accepted by the owner
    BAKING = "BAKING"             # In the oven
    COMPLETED = "COMPLETED"       # Ready / handed over
    CANCELLED = "CANCELLED"       # Cancelled by the owner


class ProductCategory(str, Enum):
    CAKES = "Cakes"
    COOKIES = "Cookies"
    PASTRIES = "Pastries"


class PaymentMethod(str, Enum):
    COD = "Cash on Delivery"
    GCASH = "GCash"


class DeliveryMethod(str, Enum):
    PICKUP = "Pickup"
    DELIVERY = "Delivery"


class UserRole(str, Enum):
    CUSTOMER = "CUSTOMER"
    ADMIN = "ADMIN"


# =============================================================================
# Catalog
# =============================================================================

class Product(BaseModel):
    """
    Catalog entry. The stock field is the inventory ledger.

    Stock is never clamped by the ledger itself; callers check it before
    letting a product into a cart.
    """
    id: str = Field(..., description="Unique, stable product identifier")
    name: str = Field(..., description="Product display name")
    price: float = Field(..., ge=0, description="Unit price")
    category: ProductCategory = Field(..., description="Menu category")
    stock: int = Field(default=0, description="Units available for sale")
    description: str = Field(default="")
    image: Optional[str] = Field(default=None, description="Opaque image reference")

    model_config = ConfigDict(use_enum_values=True)

    @property
    def in_stock(self) -> bool:
        return self.stock > 0


class Ingredient(BaseModel):
    """Raw baking supply tracked alongside product stock."""
    id: str
    name: str
    unit: str
    quantity: float = Field(..., ge=0)
    threshold: float = Field(default=0, ge=0, description="Low-stock warning level")

    @property
    def is_low(self) -> bool:
        return self.quantity <= self.threshold


class CartLineItem(BaseModel):
    """
    A product snapshot plus the quantity the customer wants.

    The snapshot keeps the price the customer saw, so the order total does
    not move if the catalog price changes later.
    """
    product: Product
    quantity: int = Field(..., ge=1, description="Units of this product")

    @property
    def product_id(self) -> str:
        return self.product.id

    @property
    def subtotal(self) -> float:
        return self.product.price * self.quantity


# =============================================================================
# Orders
# =============================================================================

class CustomDetails(BaseModel):
    """Free-form request attached to a custom-cake inquiry."""
    size: str
    notes: str = ""
    reference_image: Optional[str] = None


class Order(BaseModel):
    """
    A placed purchase or custom-cake inquiry.

    items and total_amount are frozen at creation; the only later change to
    the total is the quote an admin sets on an inquiry.
    """
    id: str = Field(..., description="Short shareable code, e.g. ORD-AB12CD")
    user_id: str = Field(default=GUEST_USER_ID, description="Owner or the guest sentinel")
    customer_name: str
    customer_email: Optional[str] = None
    items: list[CartLineItem] = Field(default_factory=list)
    total_amount: float = Field(default=0, ge=0)
    status: OrderStatus = Field(default=OrderStatus.PENDING)
    payment_method: PaymentMethod = Field(default=PaymentMethod.COD)
    payment_proof: Optional[str] = None
    delivery_method: DeliveryMethod = Field(default=DeliveryMethod.PICKUP)
    scheduled_date: str
    scheduled_time: str = "TBD"
    created_at: datetime = Field(default_factory=utcnow)
    is_custom_inquiry: bool = False
    custom_details: Optional[CustomDetails] = None

    model_config = ConfigDict(use_enum_values=True)

    @property
    def is_guest_order(self) -> bool:
        return self.user_id == GUEST_USER_ID


# =============================================================================
# Users and notifications
# =============================================================================

class UserProfile(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole = Field(default=UserRole.CUSTOMER)

    model_config = ConfigDict(use_enum_values=True)


class Identity(BaseModel):
    """
    The result of authentication as seen by the engine.

    Only the user id and role matter for business rules; name and email are
    copied onto orders.
    """
    user_id: str = GUEST_USER_ID
    name: Optional[str] = None
    email: Optional[str] = None
    role: UserRole = Field(default=UserRole.CUSTOMER)

    model_config = ConfigDict(use_enum_values=True)

    @property
    def is_guest(self) -> bool:
        return self.user_id == GUEST_USER_ID

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def guest(cls) -> "Identity":
        return cls()


class UserNotification(BaseModel):
    """
    Durable record of an order status change, owned by one user.

    is_read only ever moves from False to True.
    """
    id: str = Field(..., description="Unique notification identifier")
    user_id: str = Field(..., description="Owner; never the guest sentinel")
    message: str = Field(..., description="Pre-rendered text shown to the customer")
    order_id: str = Field(..., description="Order that triggered the notification")
    order_status: OrderStatus = Field(..., description="Status the order moved to")
    is_read: bool = False
    created_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(use_enum_values=True)
