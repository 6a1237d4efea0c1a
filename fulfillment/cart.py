"""
Session-local shopping cart.

The cart never touches the provider and its operations never fail; the only
rejection is adding a product that is out of stock. Quantities are clamped
to the stock seen when the cart is changed, not when the order is placed.
"""

from typing import Optional

from storefront.models import CartLineItem, Product


class Cart:
    """Ordered list of line items belonging to one session."""

    def __init__(self, items: Optional[list[CartLineItem]] = None):
        self.items: list[CartLineItem] = list(items or [])

    def _find(self, product_id: str) -> Optional[CartLineItem]:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def add(self, product: Product) -> bool:
        """
        Add one unit of product.

        Returns:
            False if the product is out of stock, True otherwise
        """
        if product.stock <= 0:
            return False

        existing = self._find(product.id)
        if existing is None:
            self.items.append(CartLineItem(product=product.model_copy(), quantity=1))
        else:
            existing.quantity = min(existing.quantity + 1, product.stock)
        return True

    def update_quantity(self, product: Product, quantity: int) -> None:
        """Set a line's quantity, removing it when quantity or stock is <= 0."""
        if quantity <= 0 or product.stock <= 0:
            self.remove(product.id)
            return
        existing = self._find(product.id)
        if existing is None:
            return
        existing.quantity = min(quantity, product.stock)

    def remove(self, product_id: str) -> None:
        self.items = [item for item in self.items if item.product_id != product_id]

    def clear(self) -> None:
        self.items = []

    def snapshot(self) -> list[CartLineItem]:
        return [item.model_copy(deep=True) for item in self.items]

    @property
    def total(self) -> float:
        return sum(item.subtotal for item in self.items)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def is_empty(self) -> bool:
        return not self.items

    def __len__(self) -> int:
        return len(self.items)
