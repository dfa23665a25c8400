"""Cart management — guest cart merging at sign-in.

When a visitor signs in, the anonymous cart they built is folded into the
user's cart. The discount is always cleared afterwards because the merged
subtotal differs from the one it was evaluated against.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart, normalize_user_id
from ordering.cart.helpers import normalized_anonymous_id, stamp_for
from ordering.cart.summary import empty_summary, summarize_cart
from ordering.domain import ordering

logger = structlog.get_logger(__name__)


@ordering.command(part_of="ShoppingCart")
class MergeCart:
    """Merge a guest (anonymous) cart into a registered user's cart."""

    user_id = String(required=True, max_length=255)
    anonymous_id = Identifier()
    actor_id = String(max_length=255)
    ip_address = String(max_length=64)


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(MergeCart)
    def merge_cart(self, command):
        user_id = normalize_user_id(command.user_id)
        anonymous_id = normalized_anonymous_id(command)
        stamp = stamp_for(command)
        repo = current_domain.repository_for(ShoppingCart)

        user_cart = repo.get_by_user_id(user_id)
        anonymous_cart = repo.get_by_anonymous_id(anonymous_id) if anonymous_id else None

        if user_cart is None and anonymous_cart is None:
            return empty_summary(user_id=user_id)

        if user_cart is None:
            anonymous_cart.assign_to_user(user_id, stamp)
            anonymous_cart.clear_discount(stamp)
            repo.add(anonymous_cart)

            logger.info("cart.claimed", cart_id=str(anonymous_cart.id), user_id=user_id)
            return summarize_cart(anonymous_cart)

        if anonymous_cart is not None:
            merged = user_cart.merge_from(anonymous_cart, stamp)
            user_cart.assign_to_user(user_id, stamp)
            user_cart.clear_discount(stamp)
            repo.add(user_cart)
            repo.remove(anonymous_cart)

            logger.info(
                "cart.merged",
                cart_id=str(user_cart.id),
                source_cart_id=str(anonymous_cart.id),
                items_merged=merged,
            )
            return summarize_cart(user_cart)

        user_cart.assign_to_user(user_id, stamp)
        repo.add(user_cart)
        return summarize_cart(user_cart)
