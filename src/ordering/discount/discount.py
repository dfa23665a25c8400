"""DiscountCode aggregate — a discount policy and its evaluation contract.

``preview()`` is a pure computation: it validates the policy against a
subtotal, a timestamp and an optional audience key, and returns an
``AppliedDiscount`` snapshot. It never touches redemption counters and never
checks usage limits, so it is safe to call as often as a UI needs.

Usage limits are checked separately through ``ensure_within_usage_limits()``
before a caller applies the code to a cart. Recording a redemption happens at
order finalization, outside this aggregate's operations.

Timestamps are normalized to aware UTC on the way in. Mutators that are not
given an ``AuditStamp`` attribute the change to the system actor at the
current time; command handlers always pass one.
"""

from enum import Enum

from protean import atomic_change
from protean.fields import Boolean, DateTime, Float, HasMany, Integer, String, Text, ValueObject

from ordering.audit import AuditTrail
from ordering.domain import ordering
from ordering.exceptions import DiscountUnavailable, DiscountUsageExhausted, InvalidDiscount
from shared.audit import AuditStamp, as_utc
from shared.money import ZERO, round_money, to_decimal, to_money

MAX_PERCENTAGE = 100


class DiscountType(Enum):
    PERCENTAGE = "Percentage"
    FIXED_AMOUNT = "FixedAmount"


def normalize_code(code) -> str:
    return str(code).strip().upper() if code is not None else ""


def normalize_group_key(key) -> str:
    return str(key).strip() if key is not None else ""


def _optional_money(value):
    return None if value is None else float(round_money(value))


def _validate_discount(discount_type, discount_value):
    try:
        kind = DiscountType(discount_type)
    except ValueError as exc:
        raise InvalidDiscount({"discount_type": [f"Unsupported discount type: {discount_type}"]}) from exc

    value = to_decimal(discount_value)
    if value <= 0:
        raise InvalidDiscount({"discount_value": ["Discount value must be greater than zero"]})
    if kind == DiscountType.PERCENTAGE and value > MAX_PERCENTAGE:
        raise InvalidDiscount({"discount_value": ["Percentage discount cannot exceed 100%"]})
    return kind, value


def _validate_non_negative(field_name, value):
    if value is not None and to_decimal(value) < 0:
        raise InvalidDiscount({field_name: ["Amount cannot be negative"]})


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object
class AppliedDiscount:
    """Frozen result of evaluating a discount code against one subtotal."""

    code = String(required=True, max_length=64)
    discount_type = String(required=True, choices=DiscountType)
    discount_value = Float(required=True)
    amount = Float(required=True, min_value=0.0)
    was_capped = Boolean(default=False)
    evaluated_at = DateTime(required=True)
    original_subtotal = Float(required=True, min_value=0.0)
    audience_key = String(max_length=255)
    max_discount_amount = Float()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="DiscountCode")
class DiscountGroup:
    """Per-audience rule: a usage limit and optional overrides of the base discount."""

    key = String(required=True, max_length=255)
    usage_limit = Integer(min_value=1)
    usage_count = Integer(default=0, min_value=0)
    discount_type_override = String(choices=DiscountType)
    discount_value_override = Float()
    max_discount_amount_override = Float()
    minimum_order_amount_override = Float()

    @property
    def remaining_uses(self):
        if self.usage_limit is None:
            return None
        return max(self.usage_limit - (self.usage_count or 0), 0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class DiscountCode:
    code = String(required=True, max_length=64, unique=True)
    name = String(required=True, max_length=200)
    description = Text()
    discount_type = String(required=True, choices=DiscountType)
    discount_value = Float(required=True)
    max_discount_amount = Float()
    minimum_order_amount = Float()
    starts_at = DateTime(required=True)
    ends_at = DateTime()
    is_active = Boolean(default=True)
    global_usage_limit = Integer(min_value=1)
    total_redemptions = Integer(default=0, min_value=0)
    groups = HasMany(DiscountGroup)
    audit = ValueObject(AuditTrail)

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def define(
        cls,
        code,
        name,
        discount_type,
        discount_value,
        starts_at,
        ends_at=None,
        description=None,
        max_discount_amount=None,
        minimum_order_amount=None,
        is_active=True,
        global_usage_limit=None,
        total_redemptions=0,
        stamp: AuditStamp | None = None,
    ):
        normalized_code = normalize_code(code)
        if not normalized_code:
            raise InvalidDiscount({"code": ["Discount code cannot be empty"]})
        if not name or not str(name).strip():
            raise InvalidDiscount({"name": ["Discount name cannot be empty"]})

        kind, value = _validate_discount(discount_type, discount_value)
        _validate_non_negative("max_discount_amount", max_discount_amount)
        _validate_non_negative("minimum_order_amount", minimum_order_amount)

        if starts_at is None:
            raise InvalidDiscount({"starts_at": ["Start date is required"]})
        starts_at = as_utc(starts_at)
        ends_at = as_utc(ends_at)
        if ends_at is not None and ends_at < starts_at:
            raise InvalidDiscount({"ends_at": ["End date cannot be earlier than the start date"]})
        if global_usage_limit is not None and global_usage_limit <= 0:
            raise InvalidDiscount({"global_usage_limit": ["Global usage limit must be greater than zero"]})

        stamp = stamp or AuditStamp.capture()
        return cls(
            code=normalized_code,
            name=str(name).strip(),
            description=description.strip() if description and description.strip() else None,
            discount_type=kind.value,
            discount_value=float(round_money(value)),
            max_discount_amount=_optional_money(max_discount_amount),
            minimum_order_amount=_optional_money(minimum_order_amount),
            starts_at=starts_at,
            ends_at=ends_at,
            is_active=is_active,
            global_usage_limit=global_usage_limit,
            total_redemptions=total_redemptions or 0,
            audit=AuditTrail.opened(stamp),
        )

    # -------------------------------------------------------------------
    # Audience groups
    # -------------------------------------------------------------------
    def find_group(self, key):
        normalized = normalize_group_key(key).casefold()
        if not normalized:
            return None
        return next((g for g in self.groups if g.key.casefold() == normalized), None)

    def add_or_update_group(
        self,
        key,
        usage_limit=None,
        discount_type_override=None,
        discount_value_override=None,
        max_discount_amount_override=None,
        minimum_order_amount_override=None,
        stamp: AuditStamp | None = None,
    ):
        normalized_key = normalize_group_key(key)
        if not normalized_key:
            raise InvalidDiscount({"key": ["Group key cannot be empty"]})

        _validate_discount(
            discount_type_override or self.discount_type,
            discount_value_override if discount_value_override is not None else self.discount_value,
        )
        _validate_non_negative("max_discount_amount_override", max_discount_amount_override)
        _validate_non_negative("minimum_order_amount_override", minimum_order_amount_override)
        if usage_limit is not None and usage_limit <= 0:
            raise InvalidDiscount({"usage_limit": ["Group usage limit must be greater than zero"]})

        existing = self.find_group(normalized_key)
        if existing is not None and usage_limit is not None and (existing.usage_count or 0) > usage_limit:
            raise InvalidDiscount({"usage_limit": ["Existing usage exceeds the configured usage limit for this group"]})

        override_type = DiscountType(discount_type_override).value if discount_type_override else None

        with atomic_change(self):
            if existing is None:
                group = DiscountGroup(
                    key=normalized_key,
                    usage_limit=usage_limit,
                    usage_count=0,
                    discount_type_override=override_type,
                    discount_value_override=_optional_money(discount_value_override),
                    max_discount_amount_override=_optional_money(max_discount_amount_override),
                    minimum_order_amount_override=_optional_money(minimum_order_amount_override),
                )
                self.add_groups(group)
            else:
                group = existing
                group.usage_limit = usage_limit
                group.discount_type_override = override_type
                group.discount_value_override = _optional_money(discount_value_override)
                group.max_discount_amount_override = _optional_money(max_discount_amount_override)
                group.minimum_order_amount_override = _optional_money(minimum_order_amount_override)

            self._touch(stamp)

        return group

    def remove_group(self, key, stamp: AuditStamp | None = None) -> bool:
        group = self.find_group(key)
        if group is None:
            return False

        with atomic_change(self):
            self.remove_groups(group)
            self._touch(stamp)
        return True

    def _touch(self, stamp: AuditStamp | None) -> None:
        """Stamp the audit trail; without a stamp the change is attributed to the system at the current time."""
        stamp = stamp or AuditStamp.capture()
        self.audit = self.audit.touched(stamp) if self.audit else AuditTrail.opened(stamp)

    # -------------------------------------------------------------------
    # Usage counters
    # -------------------------------------------------------------------
    @property
    def remaining_global_uses(self):
        if self.global_usage_limit is None:
            return None
        return max(self.global_usage_limit - (self.total_redemptions or 0), 0)

    def get_remaining_uses_for_group(self, audience_key):
        """Remaining uses for an audience, or None when the audience is unlimited."""
        group = self.find_group(audience_key)
        return group.remaining_uses if group is not None else None

    def ensure_within_usage_limits(self, audience_key=None) -> None:
        """Raise ``DiscountUsageExhausted`` when the global or audience limit is used up."""
        remaining_global = self.remaining_global_uses
        if remaining_global is not None and remaining_global <= 0:
            raise DiscountUsageExhausted({"code": ["Discount code usage limit has been reached"]})

        remaining_group = self.get_remaining_uses_for_group(audience_key) if audience_key else None
        if remaining_group is not None and remaining_group <= 0:
            raise DiscountUsageExhausted({"code": ["This group has exhausted its usage limit for this discount code"]})

    # -------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------
    def is_within_schedule(self, moment) -> bool:
        """Whether ``moment`` falls inside ``[starts_at, ends_at]``. Activation is checked separately."""
        moment = as_utc(moment)
        if moment < as_utc(self.starts_at):
            return False
        return self.ends_at is None or moment <= as_utc(self.ends_at)

    def preview(self, subtotal, evaluated_at, audience_key=None) -> AppliedDiscount:
        """Compute the discount for ``subtotal`` without consuming a use."""
        original = round_money(subtotal)
        evaluated_at = as_utc(evaluated_at)
        if original < 0:
            raise InvalidDiscount({"subtotal": ["Original price cannot be negative"]})

        if not self.is_active:
            raise DiscountUnavailable({"code": ["Discount code is not active"]})
        if not self.is_within_schedule(evaluated_at):
            raise DiscountUnavailable({"code": ["Discount code is not currently valid"]})

        normalized_audience = normalize_group_key(audience_key) or None
        group = None
        if self.groups:
            if normalized_audience is None:
                raise DiscountUnavailable({"code": ["This discount code is limited to specific groups"]})
            group = self.find_group(normalized_audience)
            if group is None:
                raise DiscountUnavailable({"code": ["The provided group is not eligible for this discount code"]})

        minimum = self.minimum_order_amount
        if group is not None and group.minimum_order_amount_override is not None:
            minimum = group.minimum_order_amount_override
        if minimum is not None and original < to_money(minimum):
            raise DiscountUnavailable(
                {"subtotal": ["The order amount does not meet the minimum required for this discount code"]}
            )

        effective_type = (group.discount_type_override if group else None) or self.discount_type
        effective_value = self.discount_value
        if group is not None and group.discount_value_override is not None:
            effective_value = group.discount_value_override
        effective_max = self.max_discount_amount
        if group is not None and group.max_discount_amount_override is not None:
            effective_max = group.max_discount_amount_override

        kind, value = _validate_discount(effective_type, effective_value)

        if kind == DiscountType.PERCENTAGE:
            amount = round_money(original * value / 100)
        else:
            amount = round_money(value)

        was_capped = False
        if effective_max is not None and amount > to_money(effective_max):
            amount = to_money(effective_max)
            was_capped = True
        if amount > original:
            amount = original
            was_capped = True

        return AppliedDiscount(
            code=self.code,
            discount_type=kind.value,
            discount_value=float(round_money(value)),
            amount=float(max(amount, ZERO)),
            was_capped=was_capped,
            evaluated_at=evaluated_at,
            original_subtotal=float(original),
            audience_key=normalized_audience,
            max_discount_amount=_optional_money(effective_max),
        )
