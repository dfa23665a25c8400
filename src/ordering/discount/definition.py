"""Discount code definition — command and handler."""

import json

import structlog
from protean import handle
from protean.fields import Boolean, DateTime, Float, Integer, String, Text
from protean.utils.globals import current_domain

from ordering.discount.discount import DiscountCode
from ordering.domain import ordering
from ordering.exceptions import DuplicateDiscountCode
from shared.audit import AuditStamp

logger = structlog.get_logger(__name__)


@ordering.command(part_of="DiscountCode")
class DefineDiscountCode:
    """Create a new discount code policy, optionally limited to audience groups."""

    code = String(required=True, max_length=64)
    name = String(required=True, max_length=200)
    description = Text()
    discount_type = String(required=True, max_length=20)
    discount_value = Float(required=True)
    starts_at = DateTime(required=True)
    ends_at = DateTime()
    max_discount_amount = Float()
    minimum_order_amount = Float()
    is_active = Boolean(default=True)
    global_usage_limit = Integer()
    group_rules = Text()  # JSON: list of {key, usage_limit, discount_type_override, ...}
    actor_id = String(max_length=255)
    ip_address = String(max_length=64)


@ordering.command_handler(part_of=DiscountCode)
class DefineDiscountCodeHandler:
    @handle(DefineDiscountCode)
    def define_discount_code(self, command):
        repo = current_domain.repository_for(DiscountCode)
        if repo.exists_by_code(command.code):
            raise DuplicateDiscountCode({"code": ["This discount code is already registered"]})

        stamp = AuditStamp.capture(actor_id=command.actor_id, ip_address=command.ip_address)
        discount = DiscountCode.define(
            code=command.code,
            name=command.name,
            description=command.description,
            discount_type=command.discount_type,
            discount_value=command.discount_value,
            starts_at=command.starts_at,
            ends_at=command.ends_at,
            max_discount_amount=command.max_discount_amount,
            minimum_order_amount=command.minimum_order_amount,
            is_active=command.is_active if command.is_active is not None else True,
            global_usage_limit=command.global_usage_limit,
            stamp=stamp,
        )

        rules = json.loads(command.group_rules) if command.group_rules else []
        for rule in rules:
            discount.add_or_update_group(
                key=rule["key"],
                usage_limit=rule.get("usage_limit"),
                discount_type_override=rule.get("discount_type_override"),
                discount_value_override=rule.get("discount_value_override"),
                max_discount_amount_override=rule.get("max_discount_amount_override"),
                minimum_order_amount_override=rule.get("minimum_order_amount_override"),
                stamp=stamp,
            )

        repo.add(discount)
        logger.info("discount.defined", code=discount.code, groups=len(rules))
        return str(discount.id)
