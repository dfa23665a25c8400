"""Ordering bounded context — Shopping Cart and Discount Codes.

Handles the shopping cart aggregate (items, discount snapshot, guest cart
merging at login) and the discount code policies a cart is evaluated
against.
"""

from protean.domain import Domain

from shared.logging import configure_logging

configure_logging()

ordering = Domain(name="ordering")
