"""Repository for the ShoppingCart aggregate."""

from ordering.cart.cart import ShoppingCart
from ordering.domain import ordering


@ordering.repository(part_of=ShoppingCart)
class CartRepository:
    """Cart lookups by owning identity.

    A user or anonymous visitor holds at most one cart, so each lookup
    returns the first match or None.
    """

    def get_by_user_id(self, user_id) -> ShoppingCart | None:
        user_key = str(user_id).strip() if user_id is not None else ""
        if not user_key:
            return None
        results = self._dao.query.filter(user_id=user_key).all().items
        return results[0] if results else None

    def get_by_anonymous_id(self, anonymous_id) -> ShoppingCart | None:
        anonymous_key = str(anonymous_id).strip() if anonymous_id is not None else ""
        if not anonymous_key:
            return None
        results = self._dao.query.filter(anonymous_id=anonymous_key).all().items
        return results[0] if results else None

    def resolve(self, user_id=None, anonymous_id=None) -> ShoppingCart | None:
        """The user's cart when one exists, otherwise the anonymous visitor's cart."""
        cart = self.get_by_user_id(user_id)
        if cart is not None:
            return cart
        return self.get_by_anonymous_id(anonymous_id)

    def remove(self, cart: ShoppingCart) -> None:
        self._dao.delete(cart)
