"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="ShoppingCart")
class CartCreated:
    """A shopping cart was opened for a user or an anonymous visitor."""

    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = String()
    anonymous_id = String()
    created_at = DateTime(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product was added to the cart, or its quantity increased."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    offer_id = Identifier()
    quantity_added = Integer(required=True)
    quantity = Integer(required=True)
    unit_price = Float(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemQuantitySet:
    """The quantity of a cart item was replaced."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemsRemoved:
    """One or more items matching a product (and optional variant/offer) were removed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    offer_id = Identifier()
    removed_count = Integer(required=True)
    cart_is_empty = Boolean(default=False)


@ordering.event(part_of="ShoppingCart")
class CartCleared:
    """All items were removed from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    removed_count = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartDiscountApplied:
    """A discount code was evaluated against the cart subtotal and stored."""

    __version__ = 1

    cart_id = Identifier(required=True)
    code = String(required=True)
    amount = Float(required=True)
    was_capped = Boolean(default=False)
    subtotal = Float(required=True)
    evaluated_at = DateTime(required=True)


@ordering.event(part_of="ShoppingCart")
class CartDiscountCleared:
    """The applied discount was removed, explicitly or because the subtotal changed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    code = String(required=True)
    reason = String(required=True)


@ordering.event(part_of="ShoppingCart")
class CartsMerged:
    """Items of another cart were folded into this cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    source_cart_id = Identifier(required=True)
    items_merged_count = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartReassigned:
    """The cart's owning identity changed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = String()
    anonymous_id = String()
