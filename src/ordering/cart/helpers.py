"""Shared helpers for the cart command handlers.

Every handler follows the same pattern: capture an audit stamp from the
command, resolve the caller's cart (user cart first, then the anonymous
cart), and drop a discount that no longer matches the stored subtotal.
"""

from uuid import uuid4

from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart, is_nil_uuid
from shared.audit import AuditStamp


def stamp_for(command) -> AuditStamp:
    return AuditStamp.capture(actor_id=command.actor_id or command.user_id, ip_address=command.ip_address)


def normalized_user_id(command):
    user_id = command.user_id.strip() if command.user_id else ""
    return user_id or None


def normalized_anonymous_id(command):
    anonymous_id = str(command.anonymous_id).strip() if command.anonymous_id else ""
    if not anonymous_id or is_nil_uuid(anonymous_id):
        return None
    return anonymous_id


def resolve_cart(command, stamp: AuditStamp) -> ShoppingCart | None:
    """Load the caller's cart, clearing a discount evaluated against another subtotal."""
    cart = current_domain.repository_for(ShoppingCart).resolve(
        user_id=normalized_user_id(command),
        anonymous_id=normalized_anonymous_id(command),
    )
    if cart is not None:
        cart.ensure_discount_matches_subtotal(stamp)
    return cart


def open_cart(command, stamp: AuditStamp) -> ShoppingCart:
    """New cart for the caller: a user cart, or an anonymous cart with a fresh token if needed."""
    user_id = normalized_user_id(command)
    if user_id:
        return ShoppingCart.create_for_user(user_id, stamp)
    return ShoppingCart.create_for_anonymous(normalized_anonymous_id(command) or str(uuid4()), stamp)
