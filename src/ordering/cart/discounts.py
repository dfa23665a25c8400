"""Cart discount application — commands and handler.

Applying a code checks its usage limits first and then stores the
``preview()`` result on the cart. Registered users are evaluated with their
user id as the audience key; anonymous carts carry no audience key.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.helpers import normalized_anonymous_id, normalized_user_id, resolve_cart, stamp_for
from ordering.cart.summary import empty_summary, summarize_cart
from ordering.discount.discount import DiscountCode, normalize_code
from ordering.domain import ordering
from ordering.exceptions import DiscountNotFound, EmptyCartDiscount, InvalidDiscount

logger = structlog.get_logger(__name__)


@ordering.command(part_of="ShoppingCart")
class ApplyCartDiscount:
    """Apply a discount code to the caller's cart."""

    user_id = String(max_length=255)
    anonymous_id = Identifier()
    code = String(max_length=64)
    actor_id = String(max_length=255)
    ip_address = String(max_length=64)


@ordering.command(part_of="ShoppingCart")
class ClearCartDiscount:
    user_id = String(max_length=255)
    anonymous_id = Identifier()
    actor_id = String(max_length=255)
    ip_address = String(max_length=64)


@ordering.command_handler(part_of=ShoppingCart)
class CartDiscountHandler:
    @handle(ApplyCartDiscount)
    def apply_discount(self, command):
        code = normalize_code(command.code)
        if not code:
            raise InvalidDiscount({"code": ["Discount code cannot be empty"]})

        stamp = stamp_for(command)
        cart = resolve_cart(command, stamp)
        if cart is None or cart.is_empty:
            raise EmptyCartDiscount({"cart": ["Cannot apply a discount to an empty cart"]})

        discount = current_domain.repository_for(DiscountCode).get_by_code(code)
        if discount is None:
            raise DiscountNotFound({"code": ["Discount code was not found"]})

        audience_key = cart.user_id
        discount.ensure_within_usage_limits(audience_key)
        applied = cart.apply_discount(discount, stamp.at, audience_key=audience_key, stamp=stamp)

        current_domain.repository_for(ShoppingCart).add(cart)

        logger.info(
            "cart.discount_applied",
            cart_id=str(cart.id),
            code=applied.code,
            amount=applied.amount,
            was_capped=applied.was_capped,
        )
        return summarize_cart(cart)

    @handle(ClearCartDiscount)
    def clear_discount(self, command):
        stamp = stamp_for(command)
        cart = resolve_cart(command, stamp)
        if cart is None:
            return empty_summary(normalized_user_id(command), normalized_anonymous_id(command))

        had_discount = cart.has_discount
        cart.clear_discount(stamp)
        current_domain.repository_for(ShoppingCart).add(cart)

        if had_discount:
            logger.info("cart.discount_cleared", cart_id=str(cart.id))
        return summarize_cart(cart)
