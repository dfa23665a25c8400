"""Application tests for cart item commands."""

import pytest
from ordering.cart.cart import ShoppingCart
from ordering.cart.items import AddCartItem, ClearCart, RemoveCartItem, SetCartItemQuantity
from ordering.exceptions import CartNotFound, InvalidQuantity
from protean import current_domain

ANON_ID = "c0ffee00-7777-4c55-9d0e-0a1b2c3d4e5f"


def _add_item(**overrides):
    defaults = {
        "user_id": "user-001",
        "product_id": "prod-001",
        "product_name": "French Press",
        "unit_price": 35.5,
        "quantity": 1,
    }
    defaults.update(overrides)
    return current_domain.process(AddCartItem(**defaults), asynchronous=False)


def _repo():
    return current_domain.repository_for(ShoppingCart)


class TestAddCartItemCommand:
    def test_opens_a_user_cart(self):
        summary = _add_item(quantity=2)

        cart = _repo().get_by_user_id("user-001")
        assert cart is not None
        assert summary["cart_id"] == str(cart.id)
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 2

    def test_summary_amounts_are_strings(self):
        summary = _add_item(quantity=2)
        assert summary["subtotal"] == "71.00"
        assert summary["grand_total"] == "71.00"
        assert summary["items"][0]["line_total"] == "71.00"
        assert summary["item_count"] == 2

    def test_opens_an_anonymous_cart_for_the_given_token(self):
        summary = _add_item(user_id=None, anonymous_id=ANON_ID)

        assert summary["anonymous_id"] == ANON_ID
        assert _repo().get_by_anonymous_id(ANON_ID) is not None

    def test_issues_a_token_when_none_is_given(self):
        summary = _add_item(user_id=None)

        assert summary["user_id"] is None
        assert summary["anonymous_id"]
        assert _repo().get_by_anonymous_id(summary["anonymous_id"]) is not None

    def test_reuses_the_existing_cart(self):
        first = _add_item()
        second = _add_item(product_id="prod-002", quantity=3)

        assert first["cart_id"] == second["cart_id"]
        cart = _repo().get_by_user_id("user-001")
        assert len(cart.items) == 2

    def test_same_product_increments_quantity(self):
        _add_item(quantity=1)
        _add_item(quantity=2)
        cart = _repo().get_by_user_id("user-001")
        assert cart.items[0].quantity == 3

    def test_user_cart_wins_over_anonymous_cart(self):
        _add_item(user_id=None, anonymous_id=ANON_ID)
        _add_item(user_id="user-001")

        summary = _add_item(user_id="user-001", anonymous_id=ANON_ID, product_id="prod-002")

        assert summary["user_id"] == "user-001"
        assert len(_repo().get_by_anonymous_id(ANON_ID).items) == 1

    def test_records_the_actor(self):
        _add_item(actor_id="support-agent", ip_address="192.168.1.10")
        cart = _repo().get_by_user_id("user-001")
        assert cart.audit.updated_by == "support-agent"
        assert cart.audit.ip_address == "192.168.1.10"

    def test_invalid_quantity_is_rejected(self):
        with pytest.raises(InvalidQuantity):
            _add_item(quantity=0)


class TestSetCartItemQuantityCommand:
    def test_quantity_is_replaced(self):
        _add_item(quantity=2)
        summary = current_domain.process(
            SetCartItemQuantity(
                user_id="user-001",
                product_id="prod-001",
                product_name="French Press",
                unit_price=35.5,
                quantity=5,
            ),
            asynchronous=False,
        )
        assert summary["items"][0]["quantity"] == 5
        assert _repo().get_by_user_id("user-001").items[0].quantity == 5

    def test_missing_cart_is_rejected(self):
        with pytest.raises(CartNotFound):
            current_domain.process(
                SetCartItemQuantity(
                    user_id="user-404",
                    product_id="prod-001",
                    product_name="French Press",
                    unit_price=35.5,
                    quantity=5,
                ),
                asynchronous=False,
            )


class TestRemoveCartItemCommand:
    def test_removes_the_item(self):
        _add_item(product_id="prod-001")
        _add_item(product_id="prod-002")

        summary = current_domain.process(
            RemoveCartItem(user_id="user-001", product_id="prod-001"),
            asynchronous=False,
        )

        assert [item["product_id"] for item in summary["items"]] == ["prod-002"]
        assert len(_repo().get_by_user_id("user-001").items) == 1

    def test_removing_the_last_item_deletes_the_cart(self):
        _add_item()

        summary = current_domain.process(
            RemoveCartItem(user_id="user-001", product_id="prod-001"),
            asynchronous=False,
        )

        assert summary["cart_id"] is None
        assert summary["items"] == []
        assert _repo().get_by_user_id("user-001") is None

    def test_without_a_cart_returns_an_empty_summary(self):
        summary = current_domain.process(
            RemoveCartItem(user_id="user-404", product_id="prod-001"),
            asynchronous=False,
        )
        assert summary["cart_id"] is None
        assert summary["user_id"] == "user-404"


class TestClearCartCommand:
    def test_clear_deletes_the_cart(self):
        _add_item(product_id="prod-001")
        _add_item(product_id="prod-002")

        summary = current_domain.process(ClearCart(user_id="user-001"), asynchronous=False)

        assert summary["grand_total"] == "0.00"
        assert _repo().get_by_user_id("user-001") is None
