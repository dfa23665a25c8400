"""Domain failures raised by the cart and discount aggregates.

Every failure is a ``ValidationError`` carrying a ``{field: [message]}``
dict, so callers that already handle Protean validation errors handle these
too. The subclasses let callers tell the failures apart.
"""

from protean.exceptions import ValidationError


class CartError(ValidationError):
    """Base class for shopping cart failures."""


class InvalidIdentity(CartError):
    """Empty or missing anonymous/user identifier."""


class InvalidProduct(CartError):
    """Empty product identifier or unusable product snapshot."""


class InvalidQuantity(CartError):
    """Quantity is not a positive integer."""


class ItemNotFound(CartError):
    """No cart item matches the requested merge key."""


class EmptyCartDiscount(CartError):
    """A discount cannot be applied to a cart without a positive subtotal."""


class CartNotFound(CartError):
    """No cart exists for the given user or anonymous identity."""


class DiscountError(ValidationError):
    """Base class for discount code failures."""


class InvalidDiscount(DiscountError):
    """Discount definition or evaluation input is invalid."""


class DiscountNotFound(DiscountError):
    """No discount code matches the given code."""


class DuplicateDiscountCode(DiscountError):
    """A discount code with the same normalized code already exists."""


class DiscountUnavailable(DiscountError):
    """The code exists but cannot be used for this cart right now."""


class DiscountUsageExhausted(DiscountError):
    """The global or per-audience usage limit has been reached."""
