"""Plain cart summaries returned by the cart command handlers.

Amounts are rendered as strings of rounded decimals so callers never see
float noise.
"""

from ordering.cart.cart import ShoppingCart
from shared.money import ZERO, to_money


def _amount(value) -> str:
    return str(to_money(value))


def summarize_cart(cart: ShoppingCart) -> dict:
    discount = None
    if cart.has_discount:
        applied = cart.applied_discount
        discount = {
            "code": applied.code,
            "discount_type": applied.discount_type,
            "amount": _amount(applied.amount),
            "was_capped": bool(applied.was_capped),
            "evaluated_at": applied.evaluated_at.isoformat() if applied.evaluated_at else None,
            "audience_key": applied.audience_key,
        }

    return {
        "cart_id": str(cart.id),
        "user_id": cart.user_id,
        "anonymous_id": str(cart.anonymous_id) if cart.anonymous_id else None,
        "items": [
            {
                "item_id": str(item.id),
                "product_id": str(item.product_id),
                "variant_id": str(item.variant_id) if item.variant_id else None,
                "offer_id": str(item.offer_id) if item.offer_id else None,
                "product_name": item.product.name,
                "product_slug": item.product.slug,
                "product_type": item.product.product_type,
                "thumbnail_path": item.product.thumbnail_path,
                "unit_price": _amount(item.unit_price),
                "compare_at_price": (
                    _amount(item.product.compare_at_price) if item.product.compare_at_price is not None else None
                ),
                "quantity": item.quantity,
                "line_total": _amount(item.line_total),
            }
            for item in cart.items
        ],
        "item_count": cart.item_count,
        "subtotal": _amount(cart.subtotal),
        "discount": discount,
        "discount_total": _amount(cart.discount_total),
        "grand_total": _amount(cart.grand_total),
    }


def empty_summary(user_id=None, anonymous_id=None) -> dict:
    """Summary for an identity that has no cart yet."""
    return {
        "cart_id": None,
        "user_id": user_id,
        "anonymous_id": str(anonymous_id) if anonymous_id else None,
        "items": [],
        "item_count": 0,
        "subtotal": str(ZERO),
        "discount": None,
        "discount_total": str(ZERO),
        "grand_total": str(ZERO),
    }
