"""Application tests for merging a guest cart into a user's cart at sign-in."""

from datetime import UTC, datetime, timedelta

from ordering.cart.cart import ShoppingCart
from ordering.cart.discounts import ApplyCartDiscount
from ordering.cart.items import AddCartItem
from ordering.cart.management import MergeCart
from ordering.discount.definition import DefineDiscountCode
from protean import current_domain

ANON_ID = "aa11bb22-8888-4c55-9d0e-0a1b2c3d4e5f"


def _add_item(product_id, quantity, user_id=None, anonymous_id=None):
    return current_domain.process(
        AddCartItem(
            user_id=user_id,
            anonymous_id=anonymous_id,
            product_id=product_id,
            product_name=f"Product {product_id}",
            unit_price=10,
            quantity=quantity,
        ),
        asynchronous=False,
    )


def _merge(user_id="user-001", anonymous_id=ANON_ID):
    return current_domain.process(MergeCart(user_id=user_id, anonymous_id=anonymous_id), asynchronous=False)


def _repo():
    return current_domain.repository_for(ShoppingCart)


class TestMergeCartCommand:
    def test_neither_cart_returns_empty_summary(self):
        summary = _merge()
        assert summary["cart_id"] is None
        assert summary["user_id"] == "user-001"
        assert summary["items"] == []

    def test_only_anonymous_cart_is_claimed(self):
        guest = _add_item("prod-001", 2, anonymous_id=ANON_ID)

        summary = _merge()

        assert summary["cart_id"] == guest["cart_id"]
        assert summary["user_id"] == "user-001"
        assert summary["anonymous_id"] is None
        assert _repo().get_by_anonymous_id(ANON_ID) is None
        assert _repo().get_by_user_id("user-001") is not None

    def test_claimed_cart_loses_its_discount(self):
        current_domain.process(
            DefineDiscountCode(
                code="WELCOME",
                name="Welcome",
                discount_type="FixedAmount",
                discount_value=5,
                starts_at=datetime.now(UTC) - timedelta(days=1),
            ),
            asynchronous=False,
        )
        _add_item("prod-001", 2, anonymous_id=ANON_ID)
        current_domain.process(ApplyCartDiscount(anonymous_id=ANON_ID, code="WELCOME"), asynchronous=False)

        summary = _merge()

        assert summary["discount"] is None

    def test_both_carts_are_merged(self):
        user = _add_item("prod-001", 1, user_id="user-001")
        _add_item("prod-002", 2, anonymous_id=ANON_ID)
        _add_item("prod-001", 3, anonymous_id=ANON_ID)

        summary = _merge()

        assert summary["cart_id"] == user["cart_id"]
        quantities = {item["product_id"]: item["quantity"] for item in summary["items"]}
        assert quantities == {"prod-001": 4, "prod-002": 2}
        assert _repo().get_by_anonymous_id(ANON_ID) is None

    def test_only_user_cart_is_kept(self):
        user = _add_item("prod-001", 1, user_id="user-001")

        summary = _merge(user_id="  user-001  ")

        assert summary["cart_id"] == user["cart_id"]
        assert summary["user_id"] == "user-001"
