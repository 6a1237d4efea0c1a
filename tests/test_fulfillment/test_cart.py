"""
Tests for the session cart.
"""

from fulfillment.cart import Cart


class TestAdd:
    """Tests for Cart.add."""

    def test_add_new_product(self, products):
        cart = Cart()

        assert cart.add(products[0]) is True
        assert len(cart) == 1
        assert cart.items[0].quantity == 1

    def test_add_again_increments(self, products):
        cart = Cart()
        cart.add(products[0])
        cart.add(products[0])

        assert len(cart) == 1
        assert cart.item_count == 2

    def test_out_of_stock_is_rejected(self, products):
        """Test that a product with stock 0 never enters the cart."""
        cart = Cart()

        assert cart.add(products[3]) is False
        assert cart.is_empty()

    def test_quantity_clamped_to_stock(self, products):
        cart = Cart()
        cake = products[2]
        for _ in range(cake.stock + 3):
            cart.add(cake)

        assert cart.items[0].quantity == cake.stock

    def test_line_keeps_a_copy_of_the_product(self, products):
        cart = Cart()
        cart.add(products[0])

        products[0].price = 1

        assert cart.items[0].product.price == 180


class TestUpdateQuantity:
    """Tests for Cart.update_quantity."""

    def test_sets_quantity(self, products):
        cart = Cart()
        cart.add(products[0])

        cart.update_quantity(products[0], 4)

        assert cart.items[0].quantity == 4

    def test_clamps_to_stock(self, products):
        cart = Cart()
        cart.add(products[1])

        cart.update_quantity(products[1], 50)

        assert cart.items[0].quantity == 5

    def test_zero_removes_line(self, products):
        cart = Cart()
        cart.add(products[0])

        cart.update_quantity(products[0], 0)

        assert cart.is_empty()

    def test_sold_out_product_removes_line(self, products):
        """Test that a line whose product sold out meanwhile is dropped."""
        cart = Cart()
        cart.add(products[1])

        cart.update_quantity(products[1].model_copy(update={"stock": 0}), 2)

        assert cart.is_empty()

    def test_unknown_line_is_ignored(self, products):
        cart = Cart()

        cart.update_quantity(products[0], 3)

        assert cart.is_empty()


class TestTotals:
    def test_total_and_count(self, products):
        cart = Cart()
        cart.add(products[0])
        cart.add(products[0])
        cart.add(products[1])

        assert cart.total == 180 * 2 + 150
        assert cart.item_count == 3

    def test_snapshot_is_independent(self, products):
        cart = Cart()
        cart.add(products[0])

        snapshot = cart.snapshot()
        cart.add(products[0])

        assert snapshot[0].quantity == 1

    def test_clear_and_remove(self, products):
        cart = Cart()
        cart.add(products[0])
        cart.add(products[1])

        cart.remove("p1")
        assert [i.product_id for i in cart.items] == ["p2"]

        cart.clear()
        assert cart.is_empty()
