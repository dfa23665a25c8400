"""Shopping Cart aggregate (CQRS) — items, discount snapshot and ownership.

A cart belongs to exactly one identity at a time: an anonymous visitor token
or a registered user id. Items are unique by their merge key
``(product_id, variant_id, offer_id)``; adding the same key again refreshes
the product snapshot and sums the quantities.

The applied discount is a single ``AppliedDiscount`` snapshot evaluated
against one subtotal. Every item mutation clears it, and
``ensure_discount_matches_subtotal()`` clears a stale snapshot loaded from
storage, so totals never combine a discount with a subtotal it was not
evaluated against.

Every mutator takes an optional ``AuditStamp``. Command handlers always pass
one; without it the change is attributed to the system actor at the current
UTC time. Timestamps are stored as aware UTC.
"""

from decimal import Decimal
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from ordering.audit import AuditTrail
from ordering.cart.events import (
    CartCleared,
    CartCreated,
    CartDiscountApplied,
    CartDiscountCleared,
    CartItemAdded,
    CartItemQuantitySet,
    CartItemsRemoved,
    CartReassigned,
    CartsMerged,
)
from ordering.discount.discount import AppliedDiscount
from ordering.domain import ordering
from ordering.exceptions import (
    CartError,
    EmptyCartDiscount,
    InvalidDiscount,
    InvalidIdentity,
    InvalidProduct,
    InvalidQuantity,
    ItemNotFound,
)
from shared.audit import AuditStamp
from shared.money import ZERO, round_money, to_money


class ProductType(Enum):
    PHYSICAL = "Physical"
    DIGITAL = "Digital"
    SERVICE = "Service"


class DiscountClearReason(Enum):
    REQUESTED = "Requested"
    ITEMS_CHANGED = "ItemsChanged"
    SUBTOTAL_MISMATCH = "SubtotalMismatch"


def _optional_id(value):
    """Normalize an optional variant/offer id; blanks mean "none"."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _require_product_id(product_id) -> str:
    text = _optional_id(product_id)
    if text is None or is_nil_uuid(text):
        raise InvalidProduct({"product_id": ["Product identifier cannot be empty"]})
    return text


def _require_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantity({"quantity": ["Quantity must be greater than zero"]})
    return quantity


def is_nil_uuid(text: str) -> bool:
    return set(text.replace("-", "")) == {"0"}


def normalize_anonymous_id(anonymous_id) -> str:
    text = _optional_id(anonymous_id)
    if text is None or is_nil_uuid(text):
        raise InvalidIdentity({"anonymous_id": ["Anonymous identifier cannot be empty"]})
    return text


def normalize_user_id(user_id) -> str:
    text = _optional_id(user_id)
    if text is None:
        raise InvalidIdentity({"user_id": ["User identifier cannot be empty"]})
    return text


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="ShoppingCart")
class ProductSnapshot:
    """Product details captured when the item was last added or updated.

    Replaced as a whole whenever the item is refreshed.
    """

    name = String(required=True, max_length=255)
    slug = String(max_length=255)
    unit_price = Float(required=True, min_value=0.0)
    compare_at_price = Float()
    thumbnail_path = String(max_length=500)
    product_type = String(choices=ProductType, default=ProductType.PHYSICAL.value)

    @classmethod
    def capture(
        cls,
        name,
        unit_price,
        slug=None,
        compare_at_price=None,
        thumbnail_path=None,
        product_type=ProductType.PHYSICAL,
    ):
        if not name or not str(name).strip():
            raise InvalidProduct({"product_name": ["Product name is required"]})

        price = round_money(unit_price)
        if price < 0:
            raise InvalidProduct({"unit_price": ["Unit price cannot be negative"]})

        try:
            kind = ProductType(product_type)
        except ValueError as exc:
            raise InvalidProduct({"product_type": [f"Unsupported product type: {product_type}"]}) from exc

        return cls(
            name=str(name).strip(),
            slug=_optional_id(slug),
            unit_price=float(price),
            compare_at_price=None if compare_at_price is None else float(round_money(compare_at_price)),
            thumbnail_path=_optional_id(thumbnail_path),
            product_type=kind.value,
        )


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    variant_id = Identifier()
    offer_id = Identifier()
    product = ValueObject(ProductSnapshot, required=True)
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()

    @property
    def merge_key(self):
        return (str(self.product_id), _optional_id(self.variant_id), _optional_id(self.offer_id))

    @property
    def unit_price(self) -> Decimal:
        return to_money(self.product.unit_price)

    @property
    def line_total(self) -> Decimal:
        return round_money(self.unit_price * self.quantity)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class ShoppingCart:
    anonymous_id = Identifier()  # Set for guest carts
    user_id = String(max_length=255)  # Set for registered users' carts
    items = HasMany(CartItem)
    applied_discount = ValueObject(AppliedDiscount)
    audit = ValueObject(AuditTrail)

    @invariant.post
    def cart_must_belong_to_exactly_one_identity(self):
        if bool(self.anonymous_id) == bool(self.user_id):
            raise ValidationError({"identity": ["A cart belongs to either an anonymous identifier or a user"]})

    # -------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------
    @classmethod
    def create_for_anonymous(cls, anonymous_id, stamp: AuditStamp | None = None):
        return cls._open(stamp, anonymous_id=normalize_anonymous_id(anonymous_id))

    @classmethod
    def create_for_user(cls, user_id, stamp: AuditStamp | None = None):
        return cls._open(stamp, user_id=normalize_user_id(user_id))

    @classmethod
    def _open(cls, stamp, **identity):
        stamp = stamp or AuditStamp.capture()
        cart = cls(audit=AuditTrail.opened(stamp), **identity)
        cart.raise_(
            CartCreated(
                cart_id=str(cart.id),
                user_id=cart.user_id,
                anonymous_id=str(cart.anonymous_id) if cart.anonymous_id else None,
                created_at=stamp.at,
            )
        )
        return cart

    # -------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------
    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def has_discount(self) -> bool:
        return self.applied_discount is not None and bool(self.applied_discount.code)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def subtotal(self) -> Decimal:
        return round_money(sum((item.line_total for item in self.items), ZERO))

    @property
    def discount_total(self) -> Decimal:
        if not self.has_discount:
            return ZERO
        return round_money(self.applied_discount.amount)

    @property
    def grand_total(self) -> Decimal:
        total = self.subtotal - self.discount_total
        return ZERO if total < 0 else round_money(total)

    def find_item(self, product_id, variant_id=None, offer_id=None):
        key = (str(product_id).strip(), _optional_id(variant_id), _optional_id(offer_id))
        return next((item for item in self.items if item.merge_key == key), None)

    # -------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------
    def assign_to_user(self, user_id, stamp: AuditStamp | None = None) -> None:
        """Move the cart to a user. An applied discount is left for the caller to clear."""
        normalized = normalize_user_id(user_id)

        with atomic_change(self):
            self.user_id = normalized
            self.anonymous_id = None
            self._touch(stamp)

        self.raise_(CartReassigned(cart_id=str(self.id), user_id=normalized))

    def assign_anonymous_id(self, anonymous_id, stamp: AuditStamp | None = None) -> None:
        normalized = normalize_anonymous_id(anonymous_id)

        with atomic_change(self):
            self.anonymous_id = normalized
            self.user_id = None
            self._touch(stamp)

        self.raise_(CartReassigned(cart_id=str(self.id), anonymous_id=normalized))

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(
        self,
        product_id,
        product_name,
        unit_price,
        quantity,
        product_slug=None,
        compare_at_price=None,
        thumbnail_path=None,
        product_type=ProductType.PHYSICAL,
        variant_id=None,
        offer_id=None,
        stamp: AuditStamp | None = None,
    ) -> CartItem:
        """Add a product, or increase the quantity of the item with the same merge key."""
        product_key = _require_product_id(product_id)
        _require_quantity(quantity)
        snapshot = ProductSnapshot.capture(
            name=product_name,
            unit_price=unit_price,
            slug=product_slug,
            compare_at_price=compare_at_price,
            thumbnail_path=thumbnail_path,
            product_type=product_type,
        )
        stamp = stamp or AuditStamp.capture()
        existing = self.find_item(product_key, variant_id, offer_id)

        with atomic_change(self):
            if existing is None:
                item = CartItem(
                    product_id=product_key,
                    variant_id=_optional_id(variant_id),
                    offer_id=_optional_id(offer_id),
                    product=snapshot,
                    quantity=quantity,
                    added_at=stamp.at,
                )
                self.add_items(item)
            else:
                item = existing
                item.product = snapshot
                item.quantity = existing.quantity + quantity

            cleared = self._invalidate_discount()
            self._touch(stamp)

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=str(item.id),
                product_id=product_key,
                variant_id=_optional_id(variant_id),
                offer_id=_optional_id(offer_id),
                quantity_added=quantity,
                quantity=item.quantity,
                unit_price=snapshot.unit_price,
            )
        )
        self._announce_cleared_discount(cleared, DiscountClearReason.ITEMS_CHANGED)
        return item

    def set_item_quantity(
        self,
        product_id,
        product_name,
        unit_price,
        quantity,
        product_slug=None,
        compare_at_price=None,
        thumbnail_path=None,
        product_type=ProductType.PHYSICAL,
        variant_id=None,
        offer_id=None,
        stamp: AuditStamp | None = None,
    ) -> CartItem:
        """Replace the quantity of an existing item and refresh its product snapshot."""
        product_key = _require_product_id(product_id)
        _require_quantity(quantity)
        snapshot = ProductSnapshot.capture(
            name=product_name,
            unit_price=unit_price,
            slug=product_slug,
            compare_at_price=compare_at_price,
            thumbnail_path=thumbnail_path,
            product_type=product_type,
        )

        item = self.find_item(product_key, variant_id, offer_id)
        if item is None:
            raise ItemNotFound({"product_id": ["Item was not found in the cart"]})

        previous_quantity = item.quantity
        with atomic_change(self):
            item.product = snapshot
            item.quantity = quantity
            cleared = self._invalidate_discount()
            self._touch(stamp)

        self.raise_(
            CartItemQuantitySet(
                cart_id=str(self.id),
                item_id=str(item.id),
                product_id=product_key,
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )
        self._announce_cleared_discount(cleared, DiscountClearReason.ITEMS_CHANGED)
        return item

    def remove_item(self, product_id, variant_id=None, offer_id=None, stamp: AuditStamp | None = None) -> bool:
        """Remove every item of a product, optionally narrowed to a variant and/or offer.

        Returns True when at least one item was removed.
        """
        product_key = _optional_id(product_id)
        variant_key = _optional_id(variant_id)
        offer_key = _optional_id(offer_id)
        if product_key is None:
            return False

        matches = [
            item
            for item in self.items
            if str(item.product_id) == product_key
            and (variant_key is None or _optional_id(item.variant_id) == variant_key)
            and (offer_key is None or _optional_id(item.offer_id) == offer_key)
        ]
        if not matches:
            return False

        with atomic_change(self):
            for item in matches:
                self.remove_items(item)
            cleared = self._invalidate_discount()
            self._touch(stamp)

        self.raise_(
            CartItemsRemoved(
                cart_id=str(self.id),
                product_id=product_key,
                variant_id=variant_key,
                offer_id=offer_key,
                removed_count=len(matches),
                cart_is_empty=self.is_empty,
            )
        )
        self._announce_cleared_discount(cleared, DiscountClearReason.ITEMS_CHANGED)
        return True

    def clear_items(self, stamp: AuditStamp | None = None) -> None:
        if self.is_empty:
            return

        removed = list(self.items)
        with atomic_change(self):
            for item in removed:
                self.remove_items(item)
            cleared = self._invalidate_discount()
            self._touch(stamp)

        self.raise_(CartCleared(cart_id=str(self.id), removed_count=len(removed)))
        self._announce_cleared_discount(cleared, DiscountClearReason.ITEMS_CHANGED)

    def merge_from(self, source, stamp: AuditStamp | None = None) -> int:
        """Fold the items of ``source`` into this cart, summing quantities per merge key.

        Returns the number of source items merged. The caller reassigns
        identity and clears the discount afterwards.
        """
        if source is None:
            raise CartError({"source": ["A cart to merge from is required"]})
        if source is self or str(source.id) == str(self.id):
            return 0

        stamp = stamp or AuditStamp.capture()
        merged = 0
        for item in source.items:
            self.add_item(
                product_id=item.product_id,
                product_name=item.product.name,
                unit_price=item.product.unit_price,
                quantity=item.quantity,
                product_slug=item.product.slug,
                compare_at_price=item.product.compare_at_price,
                thumbnail_path=item.product.thumbnail_path,
                product_type=item.product.product_type,
                variant_id=item.variant_id,
                offer_id=item.offer_id,
                stamp=stamp,
            )
            merged += 1

        self.raise_(
            CartsMerged(
                cart_id=str(self.id),
                source_cart_id=str(source.id),
                items_merged_count=merged,
            )
        )
        return merged

    # -------------------------------------------------------------------
    # Discount management
    # -------------------------------------------------------------------
    def apply_discount(self, discount_code, evaluated_at, audience_key=None, stamp: AuditStamp | None = None):
        """Evaluate ``discount_code`` against the current subtotal and store the snapshot.

        Usage limits are not checked here; the caller checks them first.
        """
        if discount_code is None:
            raise InvalidDiscount({"code": ["A discount code is required"]})

        subtotal = self.subtotal
        if subtotal <= 0:
            raise EmptyCartDiscount({"cart": ["Cannot apply a discount to an empty cart"]})

        snapshot = discount_code.preview(subtotal, evaluated_at, audience_key)

        with atomic_change(self):
            self.applied_discount = snapshot
            self._touch(stamp or AuditStamp.capture(at=evaluated_at))

        self.raise_(
            CartDiscountApplied(
                cart_id=str(self.id),
                code=snapshot.code,
                amount=snapshot.amount,
                was_capped=snapshot.was_capped,
                subtotal=snapshot.original_subtotal,
                evaluated_at=snapshot.evaluated_at,
            )
        )
        return snapshot

    def clear_discount(self, stamp: AuditStamp | None = None) -> None:
        if not self.has_discount:
            return

        with atomic_change(self):
            cleared = self._invalidate_discount()
            self._touch(stamp)

        self._announce_cleared_discount(cleared, DiscountClearReason.REQUESTED)

    def ensure_discount_matches_subtotal(self, stamp: AuditStamp | None = None) -> bool:
        """Clear a discount evaluated against a different subtotal. Returns True if cleared."""
        if not self.has_discount:
            return False

        evaluated = self.applied_discount.original_subtotal
        if evaluated is not None and to_money(evaluated) == self.subtotal:
            return False

        with atomic_change(self):
            cleared = self._invalidate_discount()
            self._touch(stamp)

        self._announce_cleared_discount(cleared, DiscountClearReason.SUBTOTAL_MISMATCH)
        return True

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _invalidate_discount(self):
        """Drop the discount snapshot; returns the code that was applied, if any."""
        if self.applied_discount is None:
            return None
        code = self.applied_discount.code
        self.applied_discount = None
        return code

    def _announce_cleared_discount(self, code, reason: DiscountClearReason) -> None:
        if code:
            self.raise_(CartDiscountCleared(cart_id=str(self.id), code=code, reason=reason.value))

    def _touch(self, stamp: AuditStamp | None) -> None:
        """Stamp the audit trail, defaulting to the system actor at the current time."""
        stamp = stamp or AuditStamp.capture()
        self.audit = self.audit.touched(stamp) if self.audit else AuditTrail.opened(stamp)
