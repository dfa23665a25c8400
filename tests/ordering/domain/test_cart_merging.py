"""Tests for folding a guest cart into a user's cart."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from ordering.cart.cart import ShoppingCart
from ordering.discount.discount import DiscountCode
from ordering.exceptions import CartError

ANON_ID = "3f2d9c1a-4444-4c55-9d0e-0a1b2c3d4e5f"


def _add(cart, product_id, quantity, variant_id=None, offer_id=None, price=10):
    cart.add_item(
        product_id=product_id,
        product_name=f"Product {product_id}",
        unit_price=price,
        quantity=quantity,
        variant_id=variant_id,
        offer_id=offer_id,
    )


@pytest.fixture()
def user_cart():
    cart = ShoppingCart.create_for_user("user-001")
    _add(cart, "prod-001", 1)
    return cart


@pytest.fixture()
def guest_cart():
    cart = ShoppingCart.create_for_anonymous(ANON_ID)
    _add(cart, "prod-002", 2)
    return cart


class TestMergeFrom:
    def test_distinct_items_are_appended(self, user_cart, guest_cart):
        merged = user_cart.merge_from(guest_cart)

        assert merged == 1
        quantities = {str(item.product_id): item.quantity for item in user_cart.items}
        assert quantities == {"prod-001": 1, "prod-002": 2}

    def test_colliding_keys_sum_quantities(self, user_cart, guest_cart):
        _add(guest_cart, "prod-001", 4)
        user_cart.merge_from(guest_cart)

        item = user_cart.find_item("prod-001")
        assert item.quantity == 5
        assert len(user_cart.items) == 2

    def test_variant_and_offer_ids_are_carried(self, user_cart, guest_cart):
        _add(guest_cart, "prod-003", 1, variant_id="red", offer_id="offer-9")
        user_cart.merge_from(guest_cart)

        item = user_cart.find_item("prod-003", variant_id="red", offer_id="offer-9")
        assert item is not None
        assert item.quantity == 1

    def test_source_snapshot_is_copied(self, user_cart, guest_cart):
        user_cart.merge_from(guest_cart)
        item = user_cart.find_item("prod-002")
        assert item.product.name == "Product prod-002"
        assert item.unit_price == Decimal("10.00")

    def test_source_cart_is_left_untouched(self, user_cart, guest_cart):
        user_cart.merge_from(guest_cart)
        assert len(guest_cart.items) == 1
        assert str(guest_cart.anonymous_id) == ANON_ID

    def test_merge_clears_the_target_discount(self, user_cart, guest_cart):
        now = datetime(2026, 5, 1, tzinfo=UTC)
        discount = DiscountCode.define(
            code="SAVE10",
            name="Ten percent off",
            discount_type="Percentage",
            discount_value=10,
            starts_at=now - timedelta(days=1),
        )
        user_cart.apply_discount(discount, now)

        user_cart.merge_from(guest_cart)

        assert not user_cart.has_discount

    def test_merging_an_empty_cart_changes_nothing(self, user_cart):
        empty = ShoppingCart.create_for_anonymous(ANON_ID)
        assert user_cart.merge_from(empty) == 0
        assert len(user_cart.items) == 1

    def test_merging_into_itself_is_a_noop(self, user_cart):
        assert user_cart.merge_from(user_cart) == 0
        assert user_cart.items[0].quantity == 1

    def test_missing_source_is_rejected(self, user_cart):
        with pytest.raises(CartError):
            user_cart.merge_from(None)
