"""
Inventory ledger: the stock side of the product catalog.

Stock moves when an order is placed and when the owner edits inventory.
Every change reads the product, computes the new count and writes the whole
record back; two sessions racing on the same product can over-sell, and the
last write wins.
"""

import logging
import math
from typing import Optional

from fulfillment.results import ErrorKind, OperationResult
from storefront.models import Ingredient, Product
from storefront.providers import PersistenceProvider, ProviderError

logger = logging.getLogger("inventory")


class InventoryLedger:
    """
    Stock operations on products and ingredients.

    Example:
        ledger = InventoryLedger(provider)
        await ledger.decrement_stock("p1", 2)
        await ledger.set_stock("p1", 10)
    """

    def __init__(self, provider: PersistenceProvider):
        self.provider = provider

    async def get_product(self, product_id: str) -> Optional[Product]:
        for product in await self.provider.get_products():
            if product.id == product_id:
                return product
        return None

    async def list_products(self) -> list[Product]:
        return await self.provider.get_products()

    # =========================================================================
    # Checkout path
    # =========================================================================

    async def decrement_stock(self, product_id: str, quantity: int) -> Optional[Product]:
        """
        Take quantity units off a product's stock.

        Unknown products are ignored. The count is not clamped at zero;
        callers check stock when the product goes into the cart.

        Returns:
            The updated product, or None if the product is unknown

        Raises:
            ProviderError: If the read or write fails
        """
        product = await self.get_product(product_id)
        if product is None:
            logger.warning(f"decrement_stock ignored for unknown product {product_id}")
            return None

        updated = product.model_copy(update={"stock": product.stock - quantity})
        await self.provider.update_product(updated)
        logger.info(f"Stock for {product_id}: {product.stock} -> {updated.stock}")
        return updated

    # =========================================================================
    # Admin edits
    # =========================================================================

    async def set_stock(self, product_id: str, quantity: int) -> OperationResult:
        """Set a product's stock to an absolute count (any value >= 0)."""
        action = "set_stock"
        if quantity < 0:
            return OperationResult.fail(action, ErrorKind.VALIDATION, f"Stock cannot be negative: {quantity}")

        try:
            product = await self.get_product(product_id)
            if product is None:
                return OperationResult.fail(action, ErrorKind.NOT_FOUND, f"Product not found: {product_id}")
            updated = product.model_copy(update={"stock": quantity})
            await self.provider.update_product(updated)
        except ProviderError as e:
            logger.error(f"{action} failed for {product_id}: {e}")
            return OperationResult.fail(action, ErrorKind.PROVIDER, str(e))

        logger.info(f"Stock for {product_id} set to {quantity}")
        return OperationResult.ok(action, updated)

    async def adjust_stock(self, product_id: str, delta: int) -> OperationResult:
        """
        Add (or with a negative delta, remove) units of stock.

        Admin edits never push stock below zero.
        """
        action = "adjust_stock"
        try:
            product = await self.get_product(product_id)
        except ProviderError as e:
            logger.error(f"{action} failed for {product_id}: {e}")
            return OperationResult.fail(action, ErrorKind.PROVIDER, str(e))
        if product is None:
            return OperationResult.fail(action, ErrorKind.NOT_FOUND, f"Product not found: {product_id}")

        result = await self.set_stock(product_id, max(product.stock + delta, 0))
        result.action = action
        return result

    async def increment_stock(self, product_id: str, quantity: int = 1) -> OperationResult:
        if quantity < 0:
            return OperationResult.fail("increment_stock", ErrorKind.VALIDATION, "Increment must be positive")
        return await self.adjust_stock(product_id, quantity)

    async def add_product(self, product: Product) -> OperationResult:
        action = "add_product"
        if product.stock < 0:
            return OperationResult.fail(action, ErrorKind.VALIDATION, f"Stock cannot be negative: {product.stock}")
        try:
            if await self.get_product(product.id) is not None:
                return OperationResult.fail(action, ErrorKind.VALIDATION, f"Product id already used: {product.id}")
            created = await self.provider.add_product(product)
        except ProviderError as e:
            logger.error(f"{action} failed for {product.id}: {e}")
            return OperationResult.fail(action, ErrorKind.PROVIDER, str(e))
        logger.info(f"Added product {product.id} ({product.name})")
        return OperationResult.ok(action, created)

    async def delete_product(self, product_id: str) -> OperationResult:
        """Remove a product for good. Past orders keep their snapshots."""
        action = "delete_product"
        try:
            if await self.get_product(product_id) is None:
                return OperationResult.fail(action, ErrorKind.NOT_FOUND, f"Product not found: {product_id}")
            await self.provider.delete_product(product_id)
        except ProviderError as e:
            logger.error(f"{action} failed for {product_id}: {e}")
            return OperationResult.fail(action, ErrorKind.PROVIDER, str(e))
        logger.info(f"Deleted product {product_id}")
        return OperationResult.ok(action)

    async def low_stock_products(self, threshold: int = 3) -> list[Product]:
        return [p for p in await self.provider.get_products() if p.stock <= threshold]

    # =========================================================================
    # Ingredients
    # =========================================================================

    async def set_ingredient_quantity(self, ingredient_id: str, quantity: float) -> OperationResult:
        action = "set_ingredient_quantity"
        if not math.isfinite(quantity) or quantity < 0:
            return OperationResult.fail(action, ErrorKind.VALIDATION, f"Quantity must be a finite amount >= 0: {quantity}")

        try:
            ingredient = next(
                (i for i in await self.provider.get_ingredients() if i.id == ingredient_id),
                None,
            )
            if ingredient is None:
                return OperationResult.fail(action, ErrorKind.NOT_FOUND, f"Ingredient not found: {ingredient_id}")
            updated = ingredient.model_copy(update={"quantity": quantity})
            await self.provider.update_ingredient(updated)
        except ProviderError as e:
            logger.error(f"{action} failed for {ingredient_id}: {e}")
            return OperationResult.fail(action, ErrorKind.PROVIDER, str(e))

        if updated.is_low:
            logger.warning(f"Ingredient {updated.name} is low: {updated.quantity} {updated.unit}")
        return OperationResult.ok(action, updated)

    async def low_ingredients(self) -> list[Ingredient]:
        return [i for i in await self.provider.get_ingredients() if i.is_low]
