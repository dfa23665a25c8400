"""Shared BDD fixtures and step definitions for the Ordering domain."""

from datetime import UTC, datetime, timedelta

import pytest
from ordering.cart.cart import ShoppingCart
from ordering.discount.discount import DiscountCode
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


@pytest.fixture()
def discounts():
    """Discount codes defined by Given steps, keyed by code."""
    return {}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('an empty cart for user "{user_id}"'), target_fixture="cart")
def empty_user_cart(user_id):
    cart = ShoppingCart.create_for_user(user_id)
    cart._events.clear()
    return cart


@given(parsers.cfparse('the cart contains product "{product_id}" at {price:f} with quantity {qty:d}'))
def cart_contains(cart, product_id, price, qty):
    cart.add_item(product_id=product_id, product_name=f"Product {product_id}", unit_price=price, quantity=qty)
    cart._events.clear()


@given(parsers.cfparse('a {percent:d}% discount code "{code}"'))
def percentage_code(discounts, percent, code):
    discounts[code] = DiscountCode.define(
        code=code,
        name=f"{percent}% off",
        discount_type="Percentage",
        discount_value=percent,
        starts_at=NOW - timedelta(days=1),
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the subtotal is {amount:f}"))
def subtotal_is(cart, amount):
    assert float(cart.subtotal) == pytest.approx(amount)


@then(parsers.cfparse("the discount total is {amount:f}"))
def discount_total_is(cart, amount):
    assert float(cart.discount_total) == pytest.approx(amount)


@then(parsers.cfparse("the grand total is {amount:f}"))
def grand_total_is(cart, amount):
    assert float(cart.grand_total) == pytest.approx(amount)


@then("the cart has no discount")
def cart_has_no_discount(cart):
    assert not cart.has_discount


@then("the cart is empty")
def cart_is_empty(cart):
    assert cart.is_empty


@then(parsers.cfparse('the action fails with "{message}"'))
def action_fails(error, message):
    assert isinstance(error["exc"], ValidationError)
    assert message in str(error["exc"].messages)
