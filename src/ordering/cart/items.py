"""Cart item management — commands and handler."""

import structlog
from protean import handle
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.cart.cart import ProductType, ShoppingCart
from ordering.cart.helpers import normalized_anonymous_id, normalized_user_id, open_cart, resolve_cart, stamp_for
from ordering.cart.summary import empty_summary, summarize_cart
from ordering.domain import ordering
from ordering.exceptions import CartNotFound

logger = structlog.get_logger(__name__)


@ordering.command(part_of="ShoppingCart")
class AddCartItem:
    """Add a product to the caller's cart, opening a cart when there is none."""

    user_id = String(max_length=255)
    anonymous_id = Identifier()
    product_id = Identifier(required=True)
    variant_id = Identifier()
    offer_id = Identifier()
    product_name = String(required=True, max_length=255)
    product_slug = String(max_length=255)
    unit_price = Float(required=True)
    compare_at_price = Float()
    thumbnail_path = String(max_length=500)
    product_type = String(max_length=20, default=ProductType.PHYSICAL.value)
    quantity = Integer(required=True)
    actor_id = String(max_length=255)
    ip_address = String(max_length=64)


@ordering.command(part_of="ShoppingCart")
class SetCartItemQuantity:
    """Replace the quantity of an item already in the caller's cart."""

    user_id = String(max_length=255)
    anonymous_id = Identifier()
    product_id = Identifier(required=True)
    variant_id = Identifier()
    offer_id = Identifier()
    product_name = String(required=True, max_length=255)
    product_slug = String(max_length=255)
    unit_price = Float(required=True)
    compare_at_price = Float()
    thumbnail_path = String(max_length=500)
    product_type = String(max_length=20, default=ProductType.PHYSICAL.value)
    quantity = Integer(required=True)
    actor_id = String(max_length=255)
    ip_address = String(max_length=64)


@ordering.command(part_of="ShoppingCart")
class RemoveCartItem:
    """Remove a product (optionally one variant/offer of it) from the caller's cart."""

    user_id = String(max_length=255)
    anonymous_id = Identifier()
    product_id = Identifier(required=True)
    variant_id = Identifier()
    offer_id = Identifier()
    actor_id = String(max_length=255)
    ip_address = String(max_length=64)


@ordering.command(part_of="ShoppingCart")
class ClearCart:
    user_id = String(max_length=255)
    anonymous_id = Identifier()
    actor_id = String(max_length=255)
    ip_address = String(max_length=64)


def _product_details(command) -> dict:
    return {
        "product_id": command.product_id,
        "product_name": command.product_name,
        "unit_price": command.unit_price,
        "quantity": command.quantity,
        "product_slug": command.product_slug,
        "compare_at_price": command.compare_at_price,
        "thumbnail_path": command.thumbnail_path,
        "product_type": command.product_type or ProductType.PHYSICAL.value,
        "variant_id": command.variant_id,
        "offer_id": command.offer_id,
    }


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddCartItem)
    def add_cart_item(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        stamp = stamp_for(command)

        cart = resolve_cart(command, stamp)
        if cart is None:
            cart = open_cart(command, stamp)

        item = cart.add_item(**_product_details(command), stamp=stamp)
        repo.add(cart)

        logger.info(
            "cart.item_added",
            cart_id=str(cart.id),
            product_id=str(item.product_id),
            quantity=item.quantity,
        )
        return summarize_cart(cart)

    @handle(SetCartItemQuantity)
    def set_cart_item_quantity(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        stamp = stamp_for(command)

        cart = resolve_cart(command, stamp)
        if cart is None:
            raise CartNotFound({"cart": ["No cart was found to update"]})

        item = cart.set_item_quantity(**_product_details(command), stamp=stamp)
        repo.add(cart)

        logger.info("cart.item_quantity_set", cart_id=str(cart.id), product_id=str(item.product_id), quantity=item.quantity)
        return summarize_cart(cart)

    @handle(RemoveCartItem)
    def remove_cart_item(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        stamp = stamp_for(command)

        cart = resolve_cart(command, stamp)
        if cart is None:
            return empty_summary(normalized_user_id(command), normalized_anonymous_id(command))

        removed = cart.remove_item(
            product_id=command.product_id,
            variant_id=command.variant_id,
            offer_id=command.offer_id,
            stamp=stamp,
        )

        if cart.is_empty:
            repo.remove(cart)
            logger.info("cart.deleted", cart_id=str(cart.id), reason="empty")
            return empty_summary(cart.user_id, cart.anonymous_id)

        repo.add(cart)
        if removed:
            logger.info("cart.item_removed", cart_id=str(cart.id), product_id=str(command.product_id))
        return summarize_cart(cart)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        stamp = stamp_for(command)

        cart = resolve_cart(command, stamp)
        if cart is None:
            return empty_summary(normalized_user_id(command), normalized_anonymous_id(command))

        cart.clear_items(stamp)
        repo.remove(cart)

        logger.info("cart.cleared", cart_id=str(cart.id))
        return empty_summary(cart.user_id, cart.anonymous_id)
